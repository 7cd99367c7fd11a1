"""Shared API dependencies."""
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.database import get_db
from app.services.access import Identity, resolve

bearer_scheme = HTTPBearer(auto_error=False)

__all__ = ["get_db", "get_current_identity"]


def get_current_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Identity:
    """Resolve the bearer token on the request into the caller's identity."""
    token = credentials.credentials if credentials else None
    return resolve(token)
