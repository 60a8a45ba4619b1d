"""
Core business logic for the item catalog.

This module is framework-agnostic - it doesn't import FastAPI, Snowflake,
boto3 or any infrastructure concerns. Storage backends and the vision model
are described here as protocols and implemented in the infrastructure layer.
"""
