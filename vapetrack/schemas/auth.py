from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

from ..models.user import ROLE_STAFF


class UserOut(BaseModel):
    id: int
    name: str
    email: Optional[str]
    contact_number: Optional[str]
    role: str
    is_owner: bool
    created_at: str
    added_by: Optional[str]

    class Config:
        from_attributes = True


class LoginRequest(BaseModel):
    identifier: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    role: Optional[Literal["admin", "staff"]] = None

    model_config = {
        "json_schema_extra": {
            "example": {"identifier": "owner@example.com", "password": "secret123", "role": "admin"}
        },
    }


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class LoginResponse(TokenResponse):
    user: UserOut


class RefreshRequest(BaseModel):
    refresh_token: str

    model_config = {
        "json_schema_extra": {
            "example": {"refresh_token": "<jwt>"}
        }
    }


class PasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)


class SetupStatus(BaseModel):
    initialized: bool
    company_name: Optional[str] = None


class InitializeRequest(BaseModel):
    company_name: str = Field(..., min_length=1)
    admin_name: str = Field(..., min_length=1)
    admin_email: Optional[str] = None
    admin_contact: Optional[str] = None
    admin_password: str = Field(..., min_length=6)
    initial_cash: float = Field(default=0.0, ge=0)
    initial_digital: float = Field(default=0.0, ge=0)


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: Optional[str] = None
    contact_number: Optional[str] = None
    role: Literal["admin", "staff"] = ROLE_STAFF
    password: str = Field(..., min_length=6)


class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = None
    contact_number: Optional[str] = None
