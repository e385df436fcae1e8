"""
Multi-step workflow pipelines.

Coordinates dataset loading, feature building and metric evaluation in a
reproducible, sequential run.
"""
