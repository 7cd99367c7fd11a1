"""Card request workflow: creation, field edits and the dispatch status machine."""
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
import logging
from typing import Any

from sqlalchemy.orm import Session

from app.database import utcnow
from app.models.card import STATUS_SEQUENCE, CardRequest
from app.services.access import Identity
from app.services.errors import (
    BadRequest,
    Conflict,
    InvalidTransition,
    NotFound,
    card_request_not_found,
)
from app.services.persistence import translate_storage_errors

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("branch_name", "card_type", "quantity", "card_charges", "batch")
# Columns a caller may edit directly. status has its own guarded path;
# id, initiator and timestamps are never client-writable.
MUTABLE_FIELDS = REQUIRED_FIELDS

_CENT = Decimal("0.01")
_MAX_CHARGES = Decimal("100000000")  # Numeric(10, 2)


def next_status(current: str) -> str | None:
    """Return the only status a request in ``current`` may move to."""
    if current not in STATUS_SEQUENCE:
        return None
    index = STATUS_SEQUENCE.index(current)
    if index + 1 >= len(STATUS_SEQUENCE):
        return None
    return STATUS_SEQUENCE[index + 1]


def check_transition(current: str, requested: str) -> None:
    """Raise InvalidTransition unless ``requested`` is exactly one step after ``current``."""
    current_index = STATUS_SEQUENCE.index(current) if current in STATUS_SEQUENCE else -1
    requested_index = STATUS_SEQUENCE.index(requested) if requested in STATUS_SEQUENCE else -1

    if current_index == -1 or requested_index != current_index + 1:
        raise InvalidTransition(current, requested, next_status(current))


def _clean_text(name: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise BadRequest(f"{name} must be a non-empty string")
    return value.strip()


def _clean_quantity(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise BadRequest("quantity must be a positive integer")
    return value


def _clean_charges(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise BadRequest("card_charges must be a decimal amount")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise BadRequest("card_charges must be a decimal amount")
    if not amount.is_finite() or amount < 0 or amount >= _MAX_CHARGES:
        raise BadRequest("card_charges must be a non-negative amount below 100,000,000")
    return amount.quantize(_CENT, rounding=ROUND_HALF_UP)


_CLEANERS = {
    "branch_name": lambda value: _clean_text("branch_name", value),
    "card_type": lambda value: _clean_text("card_type", value),
    "quantity": _clean_quantity,
    "card_charges": _clean_charges,
    "batch": lambda value: _clean_text("batch", value),
}


def _get_or_404(db: Session, request_id: int) -> CardRequest:
    card_request = db.query(CardRequest).filter(CardRequest.id == request_id).first()
    if not card_request:
        raise NotFound(card_request_not_found(request_id))
    return card_request


def _batch_taken(db: Session, batch: str, exclude_id: int | None = None) -> bool:
    query = db.query(CardRequest.id).filter(CardRequest.batch == batch)
    if exclude_id is not None:
        query = query.filter(CardRequest.id != exclude_id)
    return query.first() is not None


def create_card_request(
    db: Session,
    caller: Identity,
    branch_name: Any = None,
    card_type: Any = None,
    quantity: Any = None,
    card_charges: Any = None,
    batch: Any = None,
) -> CardRequest:
    """Create a Pending card request initiated by the caller."""
    supplied = {
        "branch_name": branch_name,
        "card_type": card_type,
        "quantity": quantity,
        "card_charges": card_charges,
        "batch": batch,
    }
    missing = [name for name in REQUIRED_FIELDS if supplied[name] is None or supplied[name] == ""]
    if missing:
        raise BadRequest(f"Missing required fields: {', '.join(missing)}")

    values = {name: _CLEANERS[name](value) for name, value in supplied.items()}
    conflict = f"Batch '{values['batch']}' already exists"

    with translate_storage_errors(db, conflict_detail=conflict):
        if _batch_taken(db, values["batch"]):
            raise Conflict(conflict)

        card_request = CardRequest(
            **values,
            initiator=caller.user_id,
            status=STATUS_SEQUENCE[0],
        )
        db.add(card_request)
        db.commit()
        db.refresh(card_request)

    logger.info(f"Card request {card_request.id} (batch {card_request.batch}) created by {caller.actor}")
    return card_request


def get_card_request(db: Session, request_id: int) -> CardRequest:
    """Fetch a single card request."""
    with translate_storage_errors(db):
        return _get_or_404(db, request_id)


def list_card_requests(db: Session) -> list[CardRequest]:
    """All card requests, most recently requested first."""
    with translate_storage_errors(db):
        return (
            db.query(CardRequest)
            .order_by(CardRequest.date_requested.desc(), CardRequest.id.desc())
            .all()
        )


def advance_status(
    db: Session,
    request_id: int,
    requested_status: str | None,
    caller: Identity,
) -> CardRequest:
    """Move a card request exactly one step forward in the dispatch workflow.

    The write is conditional on the status that was read, so when two callers
    race on the same request only one UPDATE matches; the loser is re-checked
    against the fresh status and rejected.
    """
    requested_status = requested_status or ""

    with translate_storage_errors(db):
        card_request = _get_or_404(db, request_id)
        current_status = card_request.status

        try:
            check_transition(current_status, requested_status)
        except InvalidTransition:
            logger.info(
                f"Rejected transition of card request {request_id} "
                f"from '{current_status}' to '{requested_status}' by {caller.actor}"
            )
            raise

        matched = (
            db.query(CardRequest)
            .filter(CardRequest.id == request_id, CardRequest.status == current_status)
            .update(
                {"status": requested_status, "updated_at": utcnow()},
                synchronize_session=False,
            )
        )
        if matched == 0:
            db.rollback()
            fresh = db.query(CardRequest).filter(CardRequest.id == request_id).first()
            if not fresh:
                raise NotFound(card_request_not_found(request_id))
            logger.info(f"Lost status race on card request {request_id}; now '{fresh.status}'")
            raise InvalidTransition(fresh.status, requested_status, next_status(fresh.status))

        db.commit()
        db.refresh(card_request)

    logger.info(
        f"Card request {request_id} moved from '{current_status}' to '{requested_status}' by {caller.actor}"
    )
    return card_request


def update_card_request(
    db: Session,
    request_id: int,
    fields: dict[str, Any],
    caller: Identity,
) -> CardRequest:
    """Edit any allowed non-status field of a card request."""
    if "status" in fields:
        raise BadRequest("Status cannot be updated using this endpoint; use the status transition instead")

    rejected = sorted(set(fields) - set(MUTABLE_FIELDS))
    if rejected:
        raise BadRequest(f"Fields cannot be updated: {', '.join(rejected)}")

    values = {name: _CLEANERS[name](value) for name, value in fields.items()}
    conflict = f"Batch '{values.get('batch')}' already exists"

    with translate_storage_errors(db, conflict_detail=conflict):
        card_request = _get_or_404(db, request_id)

        if "batch" in values and _batch_taken(db, values["batch"], exclude_id=request_id):
            raise Conflict(conflict)

        for name, value in values.items():
            setattr(card_request, name, value)
        card_request.updated_at = utcnow()

        db.commit()
        db.refresh(card_request)

    logger.info(f"Card request {request_id} updated ({', '.join(sorted(values)) or 'no fields'}) by {caller.actor}")
    return card_request


def delete_card_request(db: Session, request_id: int, caller: Identity) -> None:
    """Delete a card request."""
    with translate_storage_errors(db):
        deleted = db.query(CardRequest).filter(CardRequest.id == request_id).delete(
            synchronize_session=False,
        )
        if deleted == 0:
            raise NotFound(card_request_not_found(request_id))
        db.commit()

    logger.info(f"Card request {request_id} deleted by {caller.actor}")
