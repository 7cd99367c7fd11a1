"""Card request schemas."""
from decimal import Decimal
from typing import Any

from pydantic import BaseModel


class CardRequestCreate(BaseModel):
    """Request to raise a card request.

    Any client-supplied initiator is ignored; the caller's identity is used.
    """
    
    branch_name: Any = None
    card_type: Any = None
    quantity: Any = None
    card_charges: Any = None
    batch: Any = None


class CardRequestStatusUpdate(BaseModel):
    """Request to move a card request to its next status."""
    
    status: str | None = None


class CardRequestResponse(BaseModel):
    """Card request response."""
    
    id: int
    branch_name: str
    card_type: str
    quantity: int
    initiator: str
    card_charges: Decimal
    batch: str
    status: str
    date_requested: str
    created_at: str
    updated_at: str | None
    
    class Config:
        from_attributes = True
