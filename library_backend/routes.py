"""
HTTP routes for the library API.
"""

from __future__ import annotations

import logging
from typing import Type, TypeVar

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ValidationError

from library_backend.db import BookClient, BookStoreError
from library_backend.dependencies import get_book_client
from library_backend.schemas import (
    AddCommentPayload,
    BookDetail,
    BookSummary,
    CreateBookPayload,
    CreateBookResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

MISSING_TITLE = "missing required field title"
MISSING_COMMENT = "missing required field comment"
NO_BOOK = "no book exists"
DELETE_ALL_OK = "complete delete successful"
DELETE_OK = "delete successful"

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

PayloadT = TypeVar("PayloadT", bound=BaseModel)


async def read_payload(request: Request) -> dict:
    """
    Read the request body as a flat dict from either JSON or form data.

    Anything that is not an object yields an empty dict so the caller
    reports the missing field.
    """
    content_type = request.headers.get("content-type", "").lower()
    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        return dict(form)
    body = await request.body()
    if not body:
        return {}
    try:
        data = await request.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _parse(model: Type[PayloadT], payload: dict) -> PayloadT:
    # A wrongly typed field reads as absent.
    try:
        return model.model_validate(payload)
    except ValidationError:
        return model()


@router.get("/books", response_model=list[BookSummary])
def list_books(books: BookClient = Depends(get_book_client)):
    return [BookSummary.from_record(record) for record in books.list_books()]


@router.post("/books", response_model=CreateBookResponse)
def create_book(
    payload: dict = Depends(read_payload),
    books: BookClient = Depends(get_book_client),
):
    title = _parse(CreateBookPayload, payload).title
    if not title:
        return PlainTextResponse(MISSING_TITLE)
    record = books.create_book(title)
    logger.info("Created book %s", record.id)
    return CreateBookResponse.from_record(record)


@router.delete("/books", response_class=PlainTextResponse)
def delete_all_books(books: BookClient = Depends(get_book_client)):
    removed = books.delete_all_books()
    logger.info("Deleted all books (%d removed)", removed)
    return DELETE_ALL_OK


@router.get("/books/{book_id}", response_model=BookDetail)
def get_book(book_id: str, books: BookClient = Depends(get_book_client)):
    try:
        record = books.get_book(book_id)
    except BookStoreError:
        logger.warning("Lookup of book %s failed", book_id, exc_info=True)
        record = None
    if not record:
        return PlainTextResponse(NO_BOOK)
    return BookDetail.from_record(record)


@router.post("/books/{book_id}", response_model=BookDetail)
def add_comment(
    book_id: str,
    payload: dict = Depends(read_payload),
    books: BookClient = Depends(get_book_client),
):
    comment = _parse(AddCommentPayload, payload).comment
    if not comment:
        return PlainTextResponse(MISSING_COMMENT)
    try:
        record = books.add_comment(book_id, comment)
    except BookStoreError:
        logger.warning("Adding comment to book %s failed", book_id, exc_info=True)
        record = None
    if not record:
        return PlainTextResponse(NO_BOOK)
    return BookDetail.from_record(record)


@router.delete("/books/{book_id}", response_class=PlainTextResponse)
def delete_book(book_id: str, books: BookClient = Depends(get_book_client)):
    try:
        deleted = books.delete_book(book_id)
    except BookStoreError:
        logger.warning("Deleting book %s failed", book_id, exc_info=True)
        deleted = False
    if not deleted:
        return NO_BOOK
    logger.info("Deleted book %s", book_id)
    return DELETE_OK
