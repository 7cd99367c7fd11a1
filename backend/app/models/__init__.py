"""SQLAlchemy models package."""
from app.models.user import User
from app.models.card import CardProfile, CardRequest

__all__ = [
    "User",
    "CardProfile",
    "CardRequest",
]
