"""Shared service base with robust session lifecycle behavior."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.orm import Session

from solarcrm.database import db as database


class BaseService:
    """Base class for services that operate on a SQLAlchemy session.

    Writes normally commit immediately. Inside ``unit_of_work()`` they only
    flush, and the whole block commits once or rolls back as one.
    """

    def __init__(self, db: Session | None = None) -> None:
        self.db = db or database.SessionLocal()
        self._uow_depth = 0

    @property
    def in_unit_of_work(self) -> bool:
        return self._uow_depth > 0

    def commit(self) -> None:
        """Commit current transaction and rollback on failure."""
        if self.in_unit_of_work:
            self.db.flush()
            return
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def rollback(self) -> None:
        self.db.rollback()

    def close(self) -> None:
        self.db.close()

    @contextmanager
    def unit_of_work(self) -> Iterator[None]:
        """All-or-nothing block; nested calls join the outermost unit."""
        self._uow_depth += 1
        try:
            yield
        except BaseException:
            self._uow_depth -= 1
            if self._uow_depth == 0:
                self.db.rollback()
            raise
        else:
            self._uow_depth -= 1
            if self._uow_depth == 0:
                self.commit()

    def __enter__(self) -> "BaseService":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type:
            self.rollback()
        self.close()
