"""
HTTP interface for the story shuffler.

Usage:
    uvicorn shuffler.api.server:app --reload
"""
