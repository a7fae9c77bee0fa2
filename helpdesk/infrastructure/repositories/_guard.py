"""Translate SQLAlchemy failures into the domain persistence error."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from helpdesk.domain.errors import PersistenceError

logger = logging.getLogger(__name__)


@contextmanager
def persistence_guard(session: Session, action: str) -> Iterator[None]:
    """Roll back ``session`` and raise :class:`PersistenceError` on DB errors."""

    try:
        yield
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Error de base de datos al %s", action)
        raise PersistenceError(f"No se pudo {action}") from exc


__all__ = ["persistence_guard"]
