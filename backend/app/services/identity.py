"""User registration, login and access-token issuance."""
from datetime import datetime, timedelta, timezone
import logging

import bcrypt
from jose import jwt
from sqlalchemy.orm import Session

from app.config import get_settings
from app.models.user import User
from app.roles import ROLE_NAMES
from app.services.errors import BadRequest, Conflict, Unauthorized
from app.services.persistence import translate_storage_errors

logger = logging.getLogger(__name__)
settings = get_settings()

INVALID_CREDENTIALS = "Invalid email or password"
# bcrypt only looks at the first 72 bytes and newer releases refuse longer input
MAX_PASSWORD_BYTES = 72


def password_too_long(password: str) -> bool:
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    if password_too_long(plain_password):
        return False
    return bcrypt.checkpw(
        plain_password.encode("utf-8"),
        hashed_password.encode("utf-8"),
    )


def hash_password(password: str) -> str:
    """Hash a password."""
    return bcrypt.hashpw(
        password.encode("utf-8"),
        bcrypt.gensalt(rounds=settings.bcrypt_rounds),
    ).decode("utf-8")


def create_access_token(user: User, expires_delta: timedelta | None = None) -> str:
    """Create a signed access token carrying the user's id, email and role."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode = {
        "sub": user.id,
        "email": user.email,
        "role": user.role,
        "exp": expire,
        "type": "access",
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def register(
    db: Session,
    name: str | None,
    email: str | None,
    password: str | None,
    role: str | None = None,
) -> User:
    """Create a user account with a hashed password."""
    if not name or not email or not password:
        raise BadRequest("Name, email and password are required")
    if password_too_long(password):
        raise BadRequest(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")

    role = role or settings.default_user_role
    if role not in ROLE_NAMES:
        raise BadRequest(f"Role must be one of: {', '.join(ROLE_NAMES)}")

    with translate_storage_errors(db, conflict_detail="User already exists"):
        if db.query(User).filter(User.email == email).first():
            raise Conflict("User already exists")

        user = User(
            name=name,
            email=email,
            password_hash=hash_password(password),
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)

    logger.info(f"Registered user {user.id} with role {user.role}")
    return user


def authenticate(db: Session, email: str | None, password: str | None) -> tuple[str, User]:
    """Check credentials and issue an access token.

    Unknown email and wrong password fail with the same message.
    """
    with translate_storage_errors(db):
        user = db.query(User).filter(User.email == email).first() if email else None

    if not user or not password or not verify_password(password, user.password_hash):
        logger.info("Rejected login attempt")
        raise Unauthorized(INVALID_CREDENTIALS)

    return create_access_token(user), user
