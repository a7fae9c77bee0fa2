"""Security helpers for hashing and token verification."""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from helpdesk.config import get_settings
from helpdesk.domain.entities import Principal, Role
from helpdesk.domain.errors import AuthError

_ALGORITHM = "HS256"

pwd_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
    pbkdf2_sha256__rounds=310_000,
)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(
    user_id: int, role: Role | str, expires_delta: timedelta | None = None
) -> str:
    """Sign a token carrying the user id (``sub``) and role claims."""

    settings = get_settings()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    role_value = role.value if isinstance(role, Role) else str(role)
    claims = {"sub": str(user_id), "role": role_value, "exp": expire}
    return jwt.encode(claims, settings.secret_key, algorithm=_ALGORITHM)


def decode_access_token(token: str) -> dict:
    try:
        return jwt.decode(token, get_settings().secret_key, algorithms=[_ALGORITHM])
    except JWTError as exc:
        raise AuthError("Credenciales inválidas") from exc


def authenticate(token: str | None) -> Principal:
    """Resolve ``token`` into a :class:`Principal` or raise :class:`AuthError`.

    Used identically by the HTTP dependencies and the websocket handshake.
    """

    if not token:
        raise AuthError("No autorizado, no hay token")

    payload = decode_access_token(token)
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError) as exc:
        raise AuthError("Credenciales inválidas") from exc

    role = Role.parse(payload.get("role"))
    if role is None:
        raise AuthError("Rol desconocido en el token")
    return Principal(id=user_id, role=role)


__all__ = [
    "authenticate",
    "create_access_token",
    "decode_access_token",
    "get_password_hash",
    "pwd_context",
    "verify_password",
]
