"""
FastAPI application entry point for the library backend.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from library_backend.config import get_settings
from library_backend.db import BookClient, BookStoreError
from library_backend.dependencies import ensure_book_client
from library_backend.routes import router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Resolve storage before serving; connecting may block, so keep it off the loop.
    client = await run_in_threadpool(ensure_book_client, app)
    logger.info("Serving books from %s", client.__class__.__name__)
    yield


async def book_store_error_handler(request: Request, exc: BookStoreError):
    logger.error(
        "Storage failure on %s %s",
        request.method,
        request.url.path,
        exc_info=(type(exc), exc, exc.__traceback__),
    )
    return JSONResponse(status_code=500, content={"error": "Server error"})


def create_app(book_client: Optional[BookClient] = None) -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Personal Library Backend", version="0.1.0", lifespan=lifespan)
    app.state.book_client = book_client
    app.include_router(router, prefix=settings.api_prefix)
    app.add_exception_handler(BookStoreError, book_store_error_handler)
    return app


app = create_app()
