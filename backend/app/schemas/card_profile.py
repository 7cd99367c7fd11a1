"""Card profile schemas."""
from typing import Any

from pydantic import BaseModel, Field, field_validator

from app.services.card_profiles import load_fees


class FeeRecord(BaseModel):
    """One charge attached to a card profile."""
    
    name: str | None = None
    value: float | str | None = None
    currency: str | None = None
    frequency: str | None = None  # e.g. Monthly, One-off
    fee_impact: str | None = None  # e.g. Issuance


class CardProfileCreate(BaseModel):
    """Request to create a card profile.

    Required fields are checked by the service so a missing field is a 400,
    not a schema error.
    """
    
    card_name: str | None = None
    description: str | None = None
    bin_prefix: str | None = None
    card_scheme: str | None = None
    expiration: int | None = Field(None, description="Validity in months")
    currency: str | None = None
    branch_blacklist: str | None = None
    fees: Any = None


class CardProfileResponse(BaseModel):
    """Card profile response."""
    
    id: int
    card_name: str
    description: str | None
    bin_prefix: str
    card_scheme: str
    expiration: int
    currency: str
    branch_blacklist: str | None
    fees: list[FeeRecord]
    user_id: str | None
    created_at: str
    updated_at: str | None
    
    @field_validator("fees", mode="before")
    @classmethod
    def parse_fees(cls, v: Any) -> list[dict]:
        if isinstance(v, str):
            return load_fees(v)
        return v
    
    class Config:
        from_attributes = True
