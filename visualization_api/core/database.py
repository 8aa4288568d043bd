"""
DatabaseManager — Sync connection management for the visualization store.

Key design decisions:
- NullPool for MySQL: each request opens/closes its own connection.
- Lazy engine: created on first use, not at import time.
- One session per gateway call, committed on success and rolled back
  on any exception.
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import NullPool


# ── Declarative base for the visualization tables ────────────────
Base = declarative_base()

# Engine kwargs applied to MySQL URLs unless overridden
_MYSQL_ENGINE_KWARGS: Dict[str, Any] = {
    "poolclass": NullPool,
    "connect_args": {"charset": "utf8mb4"},
}


class DatabaseManager:
    """
    Owns the engine and session factory for one database URL.

    Extra keyword arguments are forwarded to ``create_engine`` (tests pass
    ``poolclass=StaticPool`` to share an in-memory SQLite database).
    """

    def __init__(self, url: str, echo: bool = False, **engine_kwargs: Any) -> None:
        self.url = url
        self.echo = echo
        if not engine_kwargs and url.startswith("mysql"):
            engine_kwargs = dict(_MYSQL_ENGINE_KWARGS)
        self._engine_kwargs = engine_kwargs
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = create_engine(
                self.url, echo=self.echo, **self._engine_kwargs,
            )
        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                expire_on_commit=False,
                autoflush=False,
            )
        return self._session_factory

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Session with auto-commit on success and rollback on error."""
        session: Session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_all(self) -> None:
        """Create every table registered on ``Base``."""
        # Registers the mapped classes on Base.metadata
        from visualization_api.models import visualization_models  # noqa: F401

        Base.metadata.create_all(self.engine)

    def close(self) -> None:
        """Dispose of the engine on shutdown."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
