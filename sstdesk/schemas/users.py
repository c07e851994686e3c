# sstdesk/schemas/users.py
from __future__ import annotations

from pydantic import BaseModel, EmailStr, Field, field_validator

from sstdesk.schemas.base import CamelModel


class ProfileUpdate(BaseModel):
    # усі поля опційні; змінюються тільки передані
    name: str | None = Field(default=None, min_length=1, max_length=255)
    phone: str | None = Field(default=None, max_length=32)

    # пробіли зрізаємо до перевірки довжини: "   " як ім'я не пройде
    @field_validator("name", "phone", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class ChangePasswordIn(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)


class RegisterEmployeeIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    phone: str = Field(..., min_length=1, max_length=32)

    @field_validator("name", "phone", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class ProfileOut(CamelModel):
    id: str
    name: str
    email: str
    phone: str | None = None


class ToggleActiveIn(BaseModel):
    active: bool
