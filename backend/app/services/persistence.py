"""Translate SQLAlchemy failures into service errors."""
from collections.abc import Generator
from contextlib import contextmanager
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.services.errors import Conflict, StorageFailure

logger = logging.getLogger(__name__)


@contextmanager
def translate_storage_errors(
    db: Session,
    conflict_detail: str = "Resource already exists",
) -> Generator[Session, None, None]:
    """Run a unit of work, rolling back and re-raising storage errors as service errors.

    Constraint violations become ``Conflict``; anything else the database
    raises becomes ``StorageFailure``. The caller commits inside the block.
    """
    try:
        yield db
    except IntegrityError as exc:
        db.rollback()
        logger.info(f"Integrity violation: {exc.orig}")
        raise Conflict(conflict_detail) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(f"Storage failure: {exc}")
        raise StorageFailure("Storage operation failed") from exc
