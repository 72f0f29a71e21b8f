"""
Backend package for the personal library API.

This package provides a FastAPI application that tracks books and their
comments, backed by a SQL database with an in-memory fallback when no
database is reachable.
"""
