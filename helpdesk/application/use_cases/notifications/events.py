"""Domain-event helpers that turn helpdesk activity into notifications."""

from __future__ import annotations

from decimal import Decimal

from helpdesk.domain.entities import Notification, NotificationType, Role, compose_message

from .service import NotificationService

TICKET_RELATED_TYPE = "ticket"
PAYMENT_RELATED_TYPE = "payment"
OFFER_RELATED_TYPE = "offer"

TICKET_STATUS_LABELS = {
    "open": "abierto",
    "in-progress": "en progreso",
    "in_progress": "en progreso",
    "resolved": "resuelto",
    "closed": "cerrado",
    "reopened": "reabierto",
}


def ticket_status_label(status: str) -> str:
    """Return the Spanish label for a ticket ``status`` code."""

    key = (status or "").strip().lower().replace(" ", "_")
    return TICKET_STATUS_LABELS.get(key, status)


def notify_ticket_created(service: NotificationService, *, ticket_id: int) -> None:
    service.broadcast_dashboard_update(f"Nuevo ticket creado #{ticket_id}")


def notify_ticket_status_changed(
    service: NotificationService, *, ticket_id: int, owner_id: int, status: str
) -> Notification:
    """Tell the ticket owner that the ticket moved to ``status``."""

    message = compose_message(
        f"Ticket #{ticket_id} actualizado", f"Cambió a {ticket_status_label(status)}"
    )
    saved = service.notify(
        owner_id,
        message,
        NotificationType.INFO,
        related_type=TICKET_RELATED_TYPE,
        related_id=ticket_id,
    )
    service.broadcast_dashboard_update(f"Estado del ticket #{ticket_id} actualizado")
    return saved


def notify_ticket_assigned(
    service: NotificationService, *, ticket_id: int, agent_id: int
) -> Notification:
    message = compose_message(
        f"Ticket #{ticket_id} asignado", "El ticket quedó asignado a tu usuario."
    )
    saved = service.notify(
        agent_id,
        message,
        NotificationType.INFO,
        related_type=TICKET_RELATED_TYPE,
        related_id=ticket_id,
    )
    service.broadcast_dashboard_update(f"Ticket #{ticket_id} asignado")
    return saved


def notify_ticket_comment(
    service: NotificationService, *, ticket_id: int, owner_id: int, author_name: str
) -> Notification:
    message = compose_message(
        f"Nuevo comentario en ticket #{ticket_id}", f"{author_name} agregó un comentario."
    )
    saved = service.notify(
        owner_id,
        message,
        NotificationType.INFO,
        related_type=TICKET_RELATED_TYPE,
        related_id=ticket_id,
    )
    service.broadcast_dashboard_update(f"Nuevo comentario en ticket #{ticket_id}")
    return saved


def notify_payment_reported(
    service: NotificationService,
    *,
    payment_id: int,
    amount: Decimal | float,
    username: str,
) -> list[Notification]:
    """Fan out a reported payment to every admin and agent."""

    message = f"Nuevo pago de ${amount} informado por {username}"
    saved: list[Notification] = []
    for role in (Role.ADMIN, Role.AGENT):
        saved.extend(
            service.notify_role(
                role,
                message,
                NotificationType.INFO,
                related_type=PAYMENT_RELATED_TYPE,
                related_id=payment_id,
            )
        )
    return saved


def notify_payment_reviewed(
    service: NotificationService,
    *,
    payment_id: int,
    client_id: int,
    amount: Decimal | float,
    approved: bool,
) -> Notification:
    if approved:
        message = f"Tu pago de ${amount} ha sido APROBADO"
        notification_type = NotificationType.SUCCESS
    else:
        message = f"Tu pago de ${amount} ha sido RECHAZADO"
        notification_type = NotificationType.ERROR
    return service.notify(
        client_id,
        message,
        notification_type,
        related_type=PAYMENT_RELATED_TYPE,
        related_id=payment_id,
    )


def notify_offer_published(
    service: NotificationService, *, offer_id: int, title: str
) -> list[Notification]:
    return service.notify_role(
        Role.CLIENT,
        f"Nueva oferta disponible: {title}",
        NotificationType.INFO,
        related_type=OFFER_RELATED_TYPE,
        related_id=offer_id,
    )


__all__ = [
    "notify_offer_published",
    "notify_payment_reported",
    "notify_payment_reviewed",
    "notify_ticket_assigned",
    "notify_ticket_comment",
    "notify_ticket_created",
    "notify_ticket_status_changed",
    "ticket_status_label",
]
