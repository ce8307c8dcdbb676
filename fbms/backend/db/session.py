"""Engine and session handling."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from fbms.backend.db.models import Base, Sequence

logger = logging.getLogger(__name__)


class Database:
    """Owns the engine and hands out sessions.

    ``sqlite://`` (in-memory) URLs share a single connection so every session
    sees the same data, which is what the test-suite relies on.
    """

    def __init__(self, url: str = "sqlite:///fbms.db", echo: bool = False):
        self.url = url
        kwargs: dict = {"echo": echo, "future": True}
        if url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if url in ("sqlite://", "sqlite:///:memory:"):
                kwargs["poolclass"] = StaticPool
        self.engine: Engine = create_engine(url, **kwargs)
        if url.startswith("sqlite"):
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        self._sessionmaker = sessionmaker(
            bind=self.engine,
            autoflush=True,
            expire_on_commit=False,
        )

    def create_all(self) -> None:
        Base.metadata.create_all(self.engine)
        logger.debug("Schema ensured on %s", self.url)

    def drop_all(self) -> None:
        Base.metadata.drop_all(self.engine)

    def session(self) -> Session:
        return self._sessionmaker()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Commit on success, roll back on any exception."""
        session = self.session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()


def _enable_sqlite_foreign_keys(dbapi_connection, _record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def next_sequence(session: Session, name: str, rollover: int | None = None) -> int:
    """Increment and return the named counter, starting from 1."""
    seq = session.get(Sequence, name, with_for_update=True)
    if seq is None:
        seq = Sequence(name=name, value=0)
        session.add(seq)
    seq.value += 1
    if rollover is not None and seq.value > rollover:
        seq.value = 1
    session.flush()
    return seq.value
