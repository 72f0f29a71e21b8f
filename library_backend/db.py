"""
Book storage abstraction for a SQL database and an in-memory fallback.
"""

from __future__ import annotations

import re
import threading
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import Iterator, List, Optional, Protocol

from sqlalchemy import (
    JSON,
    Column,
    Float,
    Integer,
    String,
    create_engine,
    delete,
    select,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

BOOK_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")


def is_valid_book_id(book_id: str) -> bool:
    return bool(BOOK_ID_PATTERN.match(book_id or ""))


def new_book_id() -> str:
    return uuid.uuid4().hex


class BookStoreError(Exception):
    """Raised when the storage backend fails to complete an operation."""


class BookClient(Protocol):
    """Interface for book storage."""

    def list_books(self) -> List["BookRecord"]:
        ...

    def create_book(self, title: str) -> "BookRecord":
        ...

    def get_book(self, book_id: str) -> Optional["BookRecord"]:
        ...

    def add_comment(self, book_id: str, comment: str) -> Optional["BookRecord"]:
        ...

    def delete_book(self, book_id: str) -> bool:
        ...

    def delete_all_books(self) -> int:
        ...


@dataclass
class BookRecord:
    id: str
    title: str
    comments: List[str] = field(default_factory=list)
    created_at: float = field(default_factory=lambda: time.time())

    @property
    def comment_count(self) -> int:
        return len(self.comments or [])

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "comments": list(self.comments),
        }


class InMemoryBookClient:
    """Ordered in-process book list, used when no database is reachable."""

    def __init__(self):
        self.books: List[BookRecord] = []
        self._lock = threading.Lock()

    @staticmethod
    def _copy(book: BookRecord) -> BookRecord:
        return replace(book, comments=list(book.comments))

    def _find(self, book_id: str) -> Optional[BookRecord]:
        for book in self.books:
            if book.id == book_id:
                return book
        return None

    def list_books(self) -> List[BookRecord]:
        with self._lock:
            return [self._copy(book) for book in self.books]

    def create_book(self, title: str) -> BookRecord:
        if not title:
            raise ValueError("title is required")
        record = BookRecord(id=new_book_id(), title=title)
        with self._lock:
            self.books.append(record)
            return self._copy(record)

    def get_book(self, book_id: str) -> Optional[BookRecord]:
        if not is_valid_book_id(book_id):
            return None
        with self._lock:
            book = self._find(book_id)
            return self._copy(book) if book else None

    def add_comment(self, book_id: str, comment: str) -> Optional[BookRecord]:
        if not comment:
            raise ValueError("comment is required")
        if not is_valid_book_id(book_id):
            return None
        with self._lock:
            book = self._find(book_id)
            if not book:
                return None
            book.comments.append(comment)
            return self._copy(book)

    def delete_book(self, book_id: str) -> bool:
        if not is_valid_book_id(book_id):
            return False
        with self._lock:
            book = self._find(book_id)
            if not book:
                return False
            self.books.remove(book)
            return True

    def delete_all_books(self) -> int:
        with self._lock:
            removed = len(self.books)
            self.books = []
            return removed

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.delete_all_books()


class PostgresBookClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).

    Connecting happens in the constructor; an unreachable database raises
    the underlying SQLAlchemyError.
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresBookClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with self.Session() as session:
                yield session
        except SQLAlchemyError as exc:
            raise BookStoreError(str(exc)) from exc

    def _to_book_record(self, row: "BookRow") -> BookRecord:
        return BookRecord(
            id=row.id,
            title=row.title,
            comments=list(row.comments or []),
            created_at=row.created_at,
        )

    def _get_row(
        self, session: Session, book_id: str, *, for_update: bool = False
    ) -> Optional["BookRow"]:
        stmt = select(BookRow).where(BookRow.id == book_id)
        if for_update:
            stmt = stmt.with_for_update()
        return session.execute(stmt).scalar_one_or_none()

    def list_books(self) -> List[BookRecord]:
        with self._session() as session:
            rows = session.execute(
                select(BookRow).order_by(BookRow.seq.asc())
            ).scalars()
            return [self._to_book_record(row) for row in rows]

    def create_book(self, title: str) -> BookRecord:
        if not title:
            raise ValueError("title is required")
        with self._session() as session:
            row = BookRow(
                id=new_book_id(),
                title=title,
                comments=[],
                created_at=time.time(),
            )
            session.add(row)
            session.commit()
            return self._to_book_record(row)

    def get_book(self, book_id: str) -> Optional[BookRecord]:
        if not is_valid_book_id(book_id):
            return None
        with self._session() as session:
            row = self._get_row(session, book_id)
            if not row:
                return None
            return self._to_book_record(row)

    def add_comment(self, book_id: str, comment: str) -> Optional[BookRecord]:
        if not comment:
            raise ValueError("comment is required")
        if not is_valid_book_id(book_id):
            return None
        with self._session() as session:
            row = self._get_row(session, book_id, for_update=True)
            if not row:
                return None
            # JSON columns only track reassignment, not in-place mutation.
            row.comments = [*(row.comments or []), comment]
            session.commit()
            return self._to_book_record(row)

    def delete_book(self, book_id: str) -> bool:
        if not is_valid_book_id(book_id):
            return False
        with self._session() as session:
            result = session.execute(delete(BookRow).where(BookRow.id == book_id))
            session.commit()
            return (result.rowcount or 0) > 0

    def delete_all_books(self) -> int:
        with self._session() as session:
            result = session.execute(delete(BookRow))
            session.commit()
            return result.rowcount or 0


Base = declarative_base()


class BookRow(Base):
    __tablename__ = "books"

    # Insertion order for listing; clock timestamps can tie.
    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column("_id", String(32), nullable=False, unique=True)
    title = Column(String, nullable=False)
    comments = Column(JSON, nullable=False, default=list)
    created_at = Column(Float, nullable=False)
