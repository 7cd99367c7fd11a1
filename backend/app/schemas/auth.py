"""Authentication schemas."""
from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, Field, field_validator

from app.services.identity import MAX_PASSWORD_BYTES


class UserRegister(BaseModel):
    """User registration request."""
    
    name: str = Field(..., min_length=1, max_length=255)
    email: str
    password: str = Field(..., min_length=8)
    role: str | None = None  # Admin, Branch Manager or User

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        # Stored as typed; login matches the exact string
        try:
            validate_email(v, check_deliverability=False)
        except EmailNotValidError as exc:
            raise ValueError(str(exc)) from exc
        return v

    @field_validator("password")
    @classmethod
    def check_password_length(cls, v):
        if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return v


class UserLogin(BaseModel):
    """User login request."""
    
    email: str
    password: str


class UserResponse(BaseModel):
    """User info response."""
    
    id: str
    name: str
    email: str
    role: str
    created_at: str
    updated_at: str | None = None
    
    class Config:
        from_attributes = True


class LoginResponse(BaseModel):
    """Token response."""
    
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class MessageResponse(BaseModel):
    """Generic message response."""
    
    message: str
