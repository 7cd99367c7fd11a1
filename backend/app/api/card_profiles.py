"""Card profile API endpoints."""
from typing import Any

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_identity, get_db
from app.schemas.auth import MessageResponse
from app.schemas.card_profile import CardProfileCreate, CardProfileResponse
from app.services import card_profiles
from app.services.access import Identity

router = APIRouter(tags=["card profiles"])


@router.post("/create/card-profile", response_model=CardProfileResponse, status_code=status.HTTP_201_CREATED)
def create_card_profile(
    profile_data: CardProfileCreate,
    db: Session = Depends(get_db),
    caller: Identity = Depends(get_current_identity),
):
    """Create a card profile (admins only). Expiration is in months."""
    fields = profile_data.model_dump(exclude_unset=True)
    return card_profiles.create_card_profile(db, fields, caller)


@router.get("/card-profiles", response_model=list[CardProfileResponse])
def list_card_profiles(
    db: Session = Depends(get_db),
    caller: Identity = Depends(get_current_identity),
):
    """List all card profiles, newest first."""
    return card_profiles.list_card_profiles(db)


@router.get("/card-profile/{profile_id}", response_model=CardProfileResponse)
def get_card_profile(
    profile_id: int,
    db: Session = Depends(get_db),
    caller: Identity = Depends(get_current_identity),
):
    """Get a single card profile."""
    return card_profiles.get_card_profile(db, profile_id)


@router.patch("/update/card-profile/{profile_id}", response_model=CardProfileResponse)
def update_card_profile(
    profile_id: int,
    updates: dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    caller: Identity = Depends(get_current_identity),
):
    """Partially update a card profile, including its fees (admins only)."""
    return card_profiles.update_card_profile(db, profile_id, updates, caller)


@router.delete("/delete/card-profile/{profile_id}", response_model=MessageResponse)
def delete_card_profile(
    profile_id: int,
    db: Session = Depends(get_db),
    caller: Identity = Depends(get_current_identity),
):
    """Delete a card profile (admins only)."""
    card_profiles.delete_card_profile(db, profile_id, caller)
    return MessageResponse(message="Card profile deleted successfully")
