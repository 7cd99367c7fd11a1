"""
Access control gate.

Turns a bearer credential into an Identity and answers the one authorization
question the services ask today: is this caller an admin?
"""
from dataclasses import dataclass

from jose import JWTError, jwt

from app.config import get_settings
from app.roles import ROLE_NAMES, Role
from app.services.errors import Forbidden, Unauthorized

settings = get_settings()


@dataclass(frozen=True)
class Identity:
    """Caller resolved from an access token."""

    user_id: str
    email: str | None
    role: str

    @property
    def actor(self) -> str:
        """Identity string for log lines."""
        return f"{self.role}:{self.user_id}"


def resolve(token: str | None) -> Identity:
    """Decode and verify an access token. Raises Unauthorized on any failure."""
    if not token:
        raise Unauthorized("Access denied. No token provided.")

    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        raise Unauthorized("Invalid or expired token")

    if payload.get("type") != "access":
        raise Unauthorized("Invalid token type")

    user_id = payload.get("sub")
    role = payload.get("role")
    if not user_id or role not in ROLE_NAMES:
        raise Unauthorized("Invalid token")

    return Identity(user_id=user_id, email=payload.get("email"), role=role)


def is_admin(identity: Identity) -> bool:
    return identity.role == Role.ADMIN.value


def require_admin(identity: Identity, action: str) -> None:
    """Raise Forbidden unless the caller is an admin."""
    if not is_admin(identity):
        raise Forbidden(f"Only admins can {action}.")
