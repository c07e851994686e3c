# sstdesk/schemas/notifications.py
from __future__ import annotations

from typing import Any, Optional

from pydantic import Field

from sstdesk.schemas.base import CamelModel


class NotificationCreateIn(CamelModel):
    user_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    type: str = Field(default="general", max_length=64)
    data: Optional[dict[str, Any]] = None


class MarkReadIn(CamelModel):
    # один з трьох варіантів: одна, кілька або всі
    notification_id: Optional[str] = None
    notification_ids: Optional[list[str]] = None
    mark_all_read: bool = False
