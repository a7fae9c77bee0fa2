"""FastAPI dependency utilities."""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from helpdesk.application.use_cases.notifications import (
    NotificationService,
    build_notification_service,
)
from helpdesk.config import get_settings
from helpdesk.domain.entities import Capability, Principal, has_capability
from helpdesk.domain.errors import AuthError, PersistenceError
from helpdesk.infrastructure.database import get_db
from helpdesk.infrastructure.notifications import NotificationChannel
from helpdesk.infrastructure.repositories import UserRepository
from helpdesk.infrastructure.security import authenticate

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/auth/login", auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_principal(
    token: str | None = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> Principal:
    """Resolve the bearer token into an active account's :class:`Principal`."""

    try:
        principal = authenticate(token)
    except AuthError as exc:
        raise _unauthorized(str(exc)) from exc

    try:
        user = UserRepository(db).get(principal.id)
    except PersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)
        ) from exc
    if user is None:
        raise _unauthorized("Usuario no encontrado con este token")
    if not user.is_active:
        raise _unauthorized("Tu cuenta está desactivada")
    # Role comes from the stored account, not from the token claim.
    return user.to_principal()


def require_capability(capability: Capability):
    """Build a dependency rejecting principals whose role lacks ``capability``."""

    def _dependency(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not has_capability(principal.role, capability):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Rol {principal.role.value} no autorizado",
            )
        return principal

    return _dependency


def get_notification_channel(request: Request) -> NotificationChannel:
    return request.app.state.notification_channel


def get_notification_service(
    db: Session = Depends(get_db),
    channel: NotificationChannel = Depends(get_notification_channel),
) -> NotificationService:
    return build_notification_service(db, channel)


def get_notification_list_limit() -> int:
    return get_settings().notification_list_limit
