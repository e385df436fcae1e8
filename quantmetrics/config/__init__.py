"""
Configuration loading and validation.

Provides a strongly typed settings object read from environment variables
(and a project-level .env file) with upfront validation.
"""
