"""Persistence helpers for notification entities."""

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.orm import Session

from helpdesk.domain.entities import Notification, NotificationType
from helpdesk.domain.errors import NotFoundError, ValidationError
from helpdesk.infrastructure.models import NotificationModel
from helpdesk.utils import ensure_app_naive_datetime, ensure_app_timezone, now_in_app_timezone

from ._guard import persistence_guard


class NotificationRepository:
    """Durable record of notifications per recipient and their read state."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(
        self,
        recipient_id: int | None,
        message: str | None,
        type: NotificationType | str = NotificationType.INFO,
        related_type: str | None = None,
        related_id: int | None = None,
    ) -> Notification:
        """Insert an unread notification for ``recipient_id``.

        Raises :class:`ValidationError` before touching the database when the
        recipient or the message is missing, or the type is unknown.
        """

        if recipient_id is None:
            raise ValidationError("El destinatario de la notificación es obligatorio")
        if message is None or not str(message).strip():
            raise ValidationError("El mensaje de la notificación es obligatorio")
        notification_type = _coerce_type(type)

        model = NotificationModel(
            user_id=recipient_id,
            type=notification_type.value,
            message=message,
            related_type=related_type,
            related_id=related_id,
            is_read=False,
            created_at=ensure_app_naive_datetime(now_in_app_timezone()),
        )
        with persistence_guard(self.session, "guardar la notificación"):
            self.session.add(model)
            self.session.commit()
            self.session.refresh(model)
        return self._to_entity(model)

    def get(self, notification_id: int, *, recipient_id: int) -> Notification | None:
        with persistence_guard(self.session, "consultar la notificación"):
            model = self._query_owned(notification_id, recipient_id).first()
        return self._to_entity(model) if model else None

    def list_by_recipient(
        self, recipient_id: int, *, limit: int | None = None
    ) -> list[Notification]:
        """Return the recipient's notifications, newest first."""

        query = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.user_id == recipient_id)
            .order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        with persistence_guard(self.session, "listar las notificaciones"):
            models = query.all()
        return [self._to_entity(model) for model in models]

    def count_unread(self, recipient_id: int) -> int:
        with persistence_guard(self.session, "contar las notificaciones no leídas"):
            count = (
                self.session.query(func.count(NotificationModel.id))
                .filter(
                    NotificationModel.user_id == recipient_id,
                    NotificationModel.is_read.is_(False),
                )
                .scalar()
            )
        return int(count or 0)

    def mark_read(self, notification_id: int, recipient_id: int) -> Notification:
        """Flag a single notification as read; already-read rows are left as is."""

        with persistence_guard(self.session, "marcar la notificación como leída"):
            model = self._query_owned(notification_id, recipient_id).first()
            if model is None:
                raise NotFoundError("Notificación no encontrada")
            if not model.is_read:
                model.is_read = True
                self.session.commit()
                self.session.refresh(model)
        return self._to_entity(model)

    def mark_all_read(self, recipient_id: int) -> int:
        """Flag every unread notification of ``recipient_id``; return how many changed."""

        with persistence_guard(self.session, "marcar las notificaciones como leídas"):
            updated = (
                self.session.query(NotificationModel)
                .filter(
                    NotificationModel.user_id == recipient_id,
                    NotificationModel.is_read.is_(False),
                )
                .update({NotificationModel.is_read: True}, synchronize_session=False)
            )
            self.session.commit()
        return int(updated or 0)

    def delete(self, notification_id: int, recipient_id: int) -> None:
        with persistence_guard(self.session, "eliminar la notificación"):
            deleted = self._query_owned(notification_id, recipient_id).delete(
                synchronize_session=False
            )
            if not deleted:
                self.session.rollback()
                raise NotFoundError("Notificación no encontrada")
            self.session.commit()

    def delete_all(self, recipient_id: int) -> int:
        with persistence_guard(self.session, "eliminar las notificaciones"):
            deleted = (
                self.session.query(NotificationModel)
                .filter(NotificationModel.user_id == recipient_id)
                .delete(synchronize_session=False)
            )
            self.session.commit()
        return int(deleted or 0)

    def _query_owned(self, notification_id: int, recipient_id: int):
        return self.session.query(NotificationModel).filter(
            NotificationModel.id == notification_id,
            NotificationModel.user_id == recipient_id,
        )

    @staticmethod
    def _to_entity(model: NotificationModel) -> Notification:
        return Notification(
            id=model.id,
            recipient_id=model.user_id,
            message=model.message,
            type=_coerce_type(model.type),
            related_type=model.related_type,
            related_id=model.related_id,
            is_read=bool(model.is_read),
            created_at=ensure_app_timezone(model.created_at),
        )


def _coerce_type(value: NotificationType | str | None) -> NotificationType:
    if isinstance(value, NotificationType):
        return value
    try:
        return NotificationType((value or "").strip().lower())
    except ValueError as exc:
        allowed = ", ".join(item.value for item in NotificationType)
        raise ValidationError(
            f"Tipo de notificación inválido. Valores permitidos: {allowed}"
        ) from exc


__all__ = ["NotificationRepository"]
