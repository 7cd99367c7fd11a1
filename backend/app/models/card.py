"""Card profile and card request models."""
from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from app.database import Base, utcnow

# Dispatch workflow, in order. Requests only ever move one step to the right.
STATUS_SEQUENCE: tuple[str, ...] = (
    "Pending",
    "In Progress",
    "Ready",
    "Dispatched",
    "Acknowledged",
)

_status_list = ", ".join(f"'{status}'" for status in STATUS_SEQUENCE)


class CardProfile(Base):
    """Card product template defined by an admin."""

    __tablename__ = "card_profiles"
    __table_args__ = (
        Index("ix_card_profiles_created_at", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    card_name = Column(String(255), nullable=False)
    description = Column(Text)
    bin_prefix = Column(String(10), nullable=False)
    card_scheme = Column(String(50), nullable=False)
    expiration = Column(Integer, nullable=False)  # Months
    currency = Column(String(10), nullable=False)
    branch_blacklist = Column(String(255))
    fees = Column(Text, nullable=False, default="[]")  # JSON array of fee records
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"))
    created_at = Column(String(26), default=utcnow)
    updated_at = Column(String(26), default=utcnow, onupdate=utcnow)

    # Relationships
    owner = relationship("User", back_populates="card_profiles")


class CardRequest(Base):
    """Request for a print run of physical cards raised by a branch."""

    __tablename__ = "card_requests"
    __table_args__ = (
        CheckConstraint(f"status IN ({_status_list})", name="ck_card_requests_status"),
        CheckConstraint("quantity > 0", name="ck_card_requests_quantity"),
        Index("ix_card_requests_date_requested", "date_requested"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    branch_name = Column(String(255), nullable=False)
    card_type = Column(String(100), nullable=False)
    quantity = Column(Integer, nullable=False)
    date_requested = Column(String(26), default=utcnow)
    initiator = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    card_charges = Column(Numeric(10, 2), nullable=False)
    batch = Column(String(50), unique=True, nullable=False, index=True)
    status = Column(String(50), nullable=False, default=STATUS_SEQUENCE[0])
    created_at = Column(String(26), default=utcnow)
    updated_at = Column(String(26), default=utcnow, onupdate=utcnow)

    # Relationships
    initiator_user = relationship("User", back_populates="card_requests")
