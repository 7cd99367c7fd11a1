"""Card profile store. Every mutation is restricted to admins."""
import json
import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy.orm import Session

from app.database import utcnow
from app.models.card import CardProfile
from app.services.access import Identity, require_admin
from app.services.errors import BadRequest, NotFound, card_profile_not_found
from app.services.persistence import translate_storage_errors

logger = logging.getLogger(__name__)

FEE_KEYS = ("name", "value", "currency", "frequency", "fee_impact")
REQUIRED_FIELDS = ("card_name", "bin_prefix", "card_scheme", "expiration", "currency")
TEXT_FIELDS = ("card_name", "description", "bin_prefix", "card_scheme", "currency", "branch_blacklist")
MUTABLE_FIELDS = (
    "card_name",
    "description",
    "bin_prefix",
    "card_scheme",
    "expiration",
    "currency",
    "branch_blacklist",
    "fees",
)


def normalize_fees(fees: Any) -> list[dict]:
    """Coerce a fees payload into an ordered list of fee records.

    Anything that is not a list becomes an empty list. List entries must be
    objects; each is reduced to the known fee keys.
    """
    if not isinstance(fees, list):
        return []

    normalized = []
    for position, fee in enumerate(fees):
        if not isinstance(fee, Mapping):
            raise BadRequest(f"Fee at position {position} must be an object")
        normalized.append({key: fee.get(key) for key in FEE_KEYS})
    return normalized


def load_fees(raw: str | None) -> list[dict]:
    """Decode a stored fee list."""
    return json.loads(raw or "[]")


def _clean_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    rejected = sorted(set(fields) - set(MUTABLE_FIELDS))
    if rejected:
        raise BadRequest(f"Fields cannot be set: {', '.join(rejected)}")

    values = dict(fields)
    for name in REQUIRED_FIELDS:
        if name in values and (values[name] is None or values[name] == ""):
            raise BadRequest(f"{name} cannot be empty")

    for name in TEXT_FIELDS:
        if values.get(name) is not None and not isinstance(values[name], str):
            raise BadRequest(f"{name} must be a string")

    if "expiration" in values:
        expiration = values["expiration"]
        if isinstance(expiration, bool) or not isinstance(expiration, int) or expiration < 0:
            raise BadRequest("expiration must be a whole number of months")

    if "bin_prefix" in values and len(values["bin_prefix"]) > 10:
        raise BadRequest("bin_prefix must be at most 10 characters")

    if "fees" in values:
        values["fees"] = json.dumps(normalize_fees(values["fees"]))

    return values


def _get_or_404(db: Session, profile_id: int) -> CardProfile:
    profile = db.query(CardProfile).filter(CardProfile.id == profile_id).first()
    if not profile:
        raise NotFound(card_profile_not_found(profile_id))
    return profile


def create_card_profile(db: Session, fields: Mapping[str, Any], caller: Identity) -> CardProfile:
    """Create a card profile owned by the calling admin."""
    require_admin(caller, "create card profiles")

    missing = [name for name in REQUIRED_FIELDS if fields.get(name) is None or fields.get(name) == ""]
    if missing:
        raise BadRequest(f"Missing required fields: {', '.join(missing)}")

    values = _clean_fields(fields)
    values.setdefault("fees", json.dumps([]))

    with translate_storage_errors(db):
        profile = CardProfile(**values, user_id=caller.user_id)
        db.add(profile)
        db.commit()
        db.refresh(profile)

    logger.info(f"Card profile {profile.id} ({profile.card_name}) created by {caller.actor}")
    return profile


def get_card_profile(db: Session, profile_id: int) -> CardProfile:
    """Fetch a single card profile."""
    with translate_storage_errors(db):
        return _get_or_404(db, profile_id)


def list_card_profiles(db: Session) -> list[CardProfile]:
    """All card profiles, newest first."""
    with translate_storage_errors(db):
        return (
            db.query(CardProfile)
            .order_by(CardProfile.created_at.desc(), CardProfile.id.desc())
            .all()
        )


def update_card_profile(
    db: Session,
    profile_id: int,
    fields: Mapping[str, Any],
    caller: Identity,
) -> CardProfile:
    """Apply a partial update to a card profile."""
    with translate_storage_errors(db):
        profile = _get_or_404(db, profile_id)

        require_admin(caller, "update card profiles")
        if not fields:
            raise BadRequest("No fields provided for update")

        values = _clean_fields(fields)
        for name, value in values.items():
            setattr(profile, name, value)
        profile.updated_at = utcnow()

        db.commit()
        db.refresh(profile)

    logger.info(f"Card profile {profile_id} updated ({', '.join(sorted(values))}) by {caller.actor}")
    return profile


def delete_card_profile(db: Session, profile_id: int, caller: Identity) -> None:
    """Delete a card profile."""
    with translate_storage_errors(db):
        profile = _get_or_404(db, profile_id)

        require_admin(caller, "delete card profiles")

        db.delete(profile)
        db.commit()

    logger.info(f"Card profile {profile_id} deleted by {caller.actor}")
