"""User model."""
import uuid

from sqlalchemy import CheckConstraint, Column, String, Text
from sqlalchemy.orm import relationship

from app.database import Base, utcnow
from app.roles import ROLE_NAMES

_role_list = ", ".join(f"'{name}'" for name in ROLE_NAMES)


class User(Base):
    """User account."""
    
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(f"role IN ({_role_list})", name="ck_users_role"),
    )
    
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(Text, nullable=False)
    role = Column(String(50), nullable=False)
    created_at = Column(String(26), default=utcnow)
    updated_at = Column(String(26), default=utcnow, onupdate=utcnow)
    
    # Relationships
    card_profiles = relationship("CardProfile", back_populates="owner", cascade="all, delete-orphan", passive_deletes=True)
    card_requests = relationship("CardRequest", back_populates="initiator_user", cascade="all, delete-orphan", passive_deletes=True)
