"""Card request API endpoints."""
from typing import Any

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_identity, get_db
from app.schemas.auth import MessageResponse
from app.schemas.card_request import (
    CardRequestCreate,
    CardRequestResponse,
    CardRequestStatusUpdate,
)
from app.services import card_requests
from app.services.access import Identity

router = APIRouter(tags=["card requests"])


@router.post("/create/card-request", response_model=CardRequestResponse, status_code=status.HTTP_201_CREATED)
def create_card_request(
    request_data: CardRequestCreate,
    db: Session = Depends(get_db),
    caller: Identity = Depends(get_current_identity),
):
    """Raise a card request; the caller becomes its initiator."""
    return card_requests.create_card_request(db, caller, **request_data.model_dump())


@router.get("/card-requests", response_model=list[CardRequestResponse])
def list_card_requests(
    db: Session = Depends(get_db),
    caller: Identity = Depends(get_current_identity),
):
    """List all card requests, most recent first."""
    return card_requests.list_card_requests(db)


@router.get("/card-request/{request_id}", response_model=CardRequestResponse)
def get_card_request(
    request_id: int,
    db: Session = Depends(get_db),
    caller: Identity = Depends(get_current_identity),
):
    """Get a single card request."""
    return card_requests.get_card_request(db, request_id)


@router.patch("/update-status/card-request/{request_id}", response_model=CardRequestResponse)
def update_card_request_status(
    request_id: int,
    status_data: CardRequestStatusUpdate,
    db: Session = Depends(get_db),
    caller: Identity = Depends(get_current_identity),
):
    """Advance a card request to its next status.

    Pending -> In Progress -> Ready -> Dispatched -> Acknowledged, one step at a time.
    """
    return card_requests.advance_status(db, request_id, status_data.status, caller)


@router.patch("/update/card-request/{request_id}", response_model=CardRequestResponse)
def update_card_request(
    request_id: int,
    updates: dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    caller: Identity = Depends(get_current_identity),
):
    """Update any field of a card request except its status."""
    return card_requests.update_card_request(db, request_id, updates, caller)


@router.delete("/delete/card-requests/{request_id}", response_model=MessageResponse)
def delete_card_request(
    request_id: int,
    db: Session = Depends(get_db),
    caller: Identity = Depends(get_current_identity),
):
    """Delete a card request."""
    card_requests.delete_card_request(db, request_id, caller)
    return MessageResponse(message="Card request deleted successfully")
