"""Pydantic models describing notification payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from helpdesk.domain.entities import NotificationType, Role


class NotificationRead(BaseModel):
    """Fixed-shape representation of a notification; unknown keys are dropped."""

    model_config = ConfigDict(extra="ignore")

    id: int
    user_id: int
    type: NotificationType
    message: str
    title: str | None = None
    body: str | None = None
    related_type: str | None = None
    related_id: int | None = None
    is_read: bool = False
    created_at: datetime


class NotificationListResponse(BaseModel):
    success: bool = True
    data: list[NotificationRead]


class UnreadCountResponse(BaseModel):
    success: bool = True
    count: int = Field(..., ge=0)


class NotificationActionResponse(BaseModel):
    success: bool = True
    message: str
    count: int | None = None
    data: NotificationRead | None = None


class AnnouncementCreate(BaseModel):
    """Payload used by administrators to broadcast an announcement."""

    title: str | None = Field(default=None, max_length=120, description="Título del anuncio")
    message: str = Field(..., min_length=1, description="Cuerpo del anuncio")
    target_role: Role | Literal["all"] = Field(
        default="all", description="Rol destinatario o 'all' para todos los usuarios"
    )
    type: NotificationType = NotificationType.INFO
    popup: bool = Field(
        default=False, description="Si es verdadero se emite además una alerta emergente"
    )

    def resolved_role(self) -> Role | None:
        return None if self.target_role == "all" else self.target_role


__all__ = [
    "AnnouncementCreate",
    "NotificationActionResponse",
    "NotificationListResponse",
    "NotificationRead",
    "UnreadCountResponse",
]
