# sstdesk/schemas/auth.py
from __future__ import annotations

from pydantic import BaseModel, EmailStr, Field, field_validator

from sstdesk.schemas.base import CamelModel


class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RegisterIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    phone: str | None = Field(default=None, max_length=32)

    @field_validator("name", "phone", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class UserOut(CamelModel):
    id: str
    email: str
    role: str
    name: str
    phone: str | None = None
    active: bool | None = None


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut
