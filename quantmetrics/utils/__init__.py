"""
Generic utility functions shared across modules.

Includes numerical kernels, trading-frequency helpers, logging setup and
error classes.
"""
