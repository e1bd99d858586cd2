from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError

from tenant_messaging.application.exceptions import PersistenceError


@contextmanager
def store_errors(detail: str) -> Iterator[None]:
    """Re-raise driver and connection failures as ``PersistenceError``."""
    try:
        yield
    except (SQLAlchemyError, OSError) as exc:
        raise PersistenceError(detail) from exc
