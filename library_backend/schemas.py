"""
Pydantic schemas for the library API.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict

from library_backend.db import BookRecord


class CreateBookPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None


class AddCommentPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    comment: Optional[str] = None


class BookSummary(BaseModel):
    id: str
    title: str
    commentcount: int

    @classmethod
    def from_record(cls, record: BookRecord) -> "BookSummary":
        return cls(id=record.id, title=record.title, commentcount=record.comment_count)


class CreateBookResponse(BaseModel):
    id: str
    title: str

    @classmethod
    def from_record(cls, record: BookRecord) -> "CreateBookResponse":
        return cls(id=record.id, title=record.title)


class BookDetail(BaseModel):
    id: str
    title: str
    comments: list[str]

    @classmethod
    def from_record(cls, record: BookRecord) -> "BookDetail":
        return cls(id=record.id, title=record.title, comments=list(record.comments))
