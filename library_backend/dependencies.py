"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging
import threading

from fastapi import FastAPI, Request
from sqlalchemy.exc import SQLAlchemyError

from library_backend.config import Settings, get_settings
from library_backend.db import BookClient, InMemoryBookClient, PostgresBookClient

logger = logging.getLogger(__name__)

_resolve_lock = threading.Lock()


def connect_book_client(settings: Settings) -> BookClient:
    """
    Pick the storage backend for this process.

    Falls back to in-memory storage when no database is configured or the
    connection attempt fails, including a missing database driver. The
    connection is never retried.
    """
    if settings.use_in_memory_backends or not settings.database_url:
        logger.info("No database configured, using in-memory storage")
        return InMemoryBookClient()
    try:
        client = PostgresBookClient(settings.database_url)
    except (SQLAlchemyError, ImportError) as exc:
        logger.warning(
            "Database connection failed, using in-memory storage: %s", exc
        )
        return InMemoryBookClient()
    logger.info("Connected to database (%s)", client.engine.url.get_backend_name())
    return client


def ensure_book_client(app: FastAPI) -> BookClient:
    """
    Return the app's storage backend, resolving it on first use so every
    request of the process sees the same one.
    """
    client = getattr(app.state, "book_client", None)
    if client is not None:
        return client
    with _resolve_lock:
        if getattr(app.state, "book_client", None) is None:
            app.state.book_client = connect_book_client(get_settings())
        return app.state.book_client


def get_book_client(request: Request) -> BookClient:
    return ensure_book_client(request.app)
