"""
Dataset access, CSV reading and column contracts.

Loads tabular market and trade data, applies lazy date filters and column
selections, and validates the numeric columns the engines consume.
"""
