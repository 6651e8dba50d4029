"""Pydantic schemas for student registration and login."""
from pydantic import BaseModel, EmailStr, Field


class StudentCredentials(BaseModel):
    """Request body for POST /registry/register and /registry/login."""
    student_id: str = Field(..., min_length=1, max_length=32)
    email: EmailStr
    wallet: str = Field(..., min_length=1, max_length=128)


class RegistryResponse(BaseModel):
    message: str


class Token(BaseModel):
    """Response for login: access_token and type."""
    access_token: str
    token_type: str = "bearer"
