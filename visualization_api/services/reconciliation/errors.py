"""
Error taxonomy for the reconciliation engine.

Gateways raise exceptions (``PersistenceError``, ``RemoteServiceError``);
the engine catches them and reports a ``ReconciliationError`` whose
``kind`` tells the caller what happened:

  USER_DATA       caller input is invalid or references missing data.
  CLIENT          an inconsistency was detected / compensated; the result
                  carries the best-known partial aggregate.
  INFRASTRUCTURE  the store or the remote service failed outright.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    USER_DATA = "user_data"
    CLIENT = "client"
    INFRASTRUCTURE = "infrastructure"


class ReconciliationError(Exception):
    """Classified failure returned by the engine (never raised by it)."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.cause = cause

    def __repr__(self) -> str:
        return f"ReconciliationError(kind={self.kind.value!r}, message={self.message!r})"


class PersistenceError(Exception):
    """The local store failed (connectivity, transaction abort, ...)."""


class RemoteServiceError(Exception):
    """The remote rendering service failed or rejected a request."""
