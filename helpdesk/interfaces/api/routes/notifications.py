"""Endpoints and websocket handler for realtime notifications."""

from __future__ import annotations

import logging

from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    WebSocket,
    WebSocketDisconnect,
    status,
)

from helpdesk.application.use_cases.notifications import NotificationService
from helpdesk.domain.entities import Capability, Notification, Principal
from helpdesk.domain.errors import (
    AuthError,
    NotFoundError,
    NotificationError,
    ValidationError,
)
from helpdesk.infrastructure.notifications import NotificationChannel, serialize_notification
from helpdesk.infrastructure.security import authenticate
from helpdesk.interfaces.api.dependencies import (
    get_current_principal,
    get_notification_list_limit,
    get_notification_service,
    require_capability,
)
from helpdesk.interfaces.api.schemas import (
    AnnouncementCreate,
    NotificationActionResponse,
    NotificationListResponse,
    NotificationRead,
    UnreadCountResponse,
)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])
logger = logging.getLogger(__name__)


def _to_read_model(notification: Notification) -> NotificationRead:
    return NotificationRead.model_validate(serialize_notification(notification))


def _to_http_error(exc: NotificationError) -> HTTPException:
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, AuthError):
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Error interno al procesar las notificaciones",
    )


@router.get("", response_model=NotificationListResponse)
def list_notifications(
    principal: Principal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
    limit: int = Depends(get_notification_list_limit),
) -> NotificationListResponse:
    """Devuelve las notificaciones más recientes del usuario autenticado."""

    try:
        notifications = service.list_for_recipient(principal.id, limit=limit)
    except NotificationError as exc:
        raise _to_http_error(exc) from exc
    return NotificationListResponse(data=[_to_read_model(n) for n in notifications])


@router.get("/unread-count", response_model=UnreadCountResponse)
def unread_notification_count(
    principal: Principal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
) -> UnreadCountResponse:
    """Devuelve la cantidad de notificaciones no leídas."""

    try:
        count = service.count_unread(principal.id)
    except NotificationError as exc:
        raise _to_http_error(exc) from exc
    return UnreadCountResponse(count=count)


@router.put("", response_model=NotificationActionResponse)
@router.put("/read-all", response_model=NotificationActionResponse)
def mark_all_notifications_as_read(
    principal: Principal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationActionResponse:
    """Marca como leídas todas las notificaciones del usuario."""

    try:
        updated = service.mark_all_read(principal.id)
    except NotificationError as exc:
        raise _to_http_error(exc) from exc
    return NotificationActionResponse(message="Todas marcadas como leídas", count=updated)


@router.put("/{notification_id}/read", response_model=NotificationActionResponse)
def mark_notification_as_read(
    notification_id: int,
    principal: Principal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationActionResponse:
    """Marca una notificación propia como leída."""

    try:
        notification = service.mark_read(notification_id, principal.id)
    except NotificationError as exc:
        raise _to_http_error(exc) from exc
    return NotificationActionResponse(
        message="Marcada como leída", data=_to_read_model(notification)
    )


@router.delete("/{notification_id}", response_model=NotificationActionResponse)
def delete_notification(
    notification_id: int,
    principal: Principal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationActionResponse:
    try:
        service.delete(notification_id, principal.id)
    except NotificationError as exc:
        raise _to_http_error(exc) from exc
    return NotificationActionResponse(message="Eliminada")


@router.delete("", response_model=NotificationActionResponse)
def delete_all_notifications(
    principal: Principal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationActionResponse:
    try:
        deleted = service.delete_all(principal.id)
    except NotificationError as exc:
        raise _to_http_error(exc) from exc
    return NotificationActionResponse(message="Todas eliminadas", count=deleted)


@router.post(
    "/announce",
    response_model=NotificationActionResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_announcement(
    announcement: AnnouncementCreate,
    _: Principal = Depends(require_capability(Capability.ANNOUNCE)),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationActionResponse:
    """Envía un anuncio masivo a un rol o a todos los usuarios."""

    try:
        saved = service.announce(
            title=announcement.title,
            message=announcement.message,
            type=announcement.type,
            target_role=announcement.resolved_role(),
            popup=announcement.popup,
        )
    except NotificationError as exc:
        raise _to_http_error(exc) from exc

    if not saved:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No hay usuarios destinatarios.",
        )
    return NotificationActionResponse(
        message=f"Anuncio enviado a {len(saved)} usuarios.", count=len(saved)
    )


def _token_from_websocket(websocket: WebSocket) -> str | None:
    token = websocket.query_params.get("token")
    if token:
        return token
    authorization = websocket.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket) -> None:
    """Websocket endpoint that streams notifications to the authenticated user.

    Sockets that fail authentication stay open but join no group, so they
    never receive targeted events.
    """

    channel: NotificationChannel = websocket.app.state.notification_channel
    await channel.connect(websocket)

    try:
        principal = authenticate(_token_from_websocket(websocket))
    except AuthError as exc:
        logger.info("Conexión de notificaciones sin autenticar: %s", exc)
    else:
        channel.join(websocket, principal.id, principal.role)

    try:
        while True:
            try:
                message = await websocket.receive_json()
            except WebSocketDisconnect:
                raise
            except (ValueError, KeyError):
                continue

            if isinstance(message, dict) and message.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        pass
    finally:
        channel.disconnect(websocket)
