"""
API module.
Contains the FastAPI application exposing the build queue.
"""
