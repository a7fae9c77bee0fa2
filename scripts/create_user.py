"""Utility script to create a helpdesk account and print an access token."""

from __future__ import annotations

import argparse
from getpass import getpass

from helpdesk.domain.entities import Role, User
from helpdesk.domain.errors import NotificationError
from helpdesk.infrastructure.database import SessionLocal, initialize_database
from helpdesk.infrastructure.repositories import UserRepository
from helpdesk.infrastructure.security import create_access_token, get_password_hash


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments for user creation."""

    parser = argparse.ArgumentParser(
        description="Create a helpdesk account to receive notifications.",
    )
    parser.add_argument(
        "--username",
        default="Administrador",
        help="Nombre del usuario (por defecto: Administrador)",
    )
    parser.add_argument(
        "--email",
        default="admin@example.com",
        help="Correo electrónico del usuario (por defecto: admin@example.com)",
    )
    parser.add_argument(
        "--role",
        choices=[role.value for role in Role],
        default=Role.ADMIN.value,
        help="Rol del usuario (por defecto: admin)",
    )
    parser.add_argument(
        "--password",
        default=None,
        help="Contraseña del usuario. Si no se proporciona se solicitará interactivamente.",
    )
    return parser.parse_args(argv)


def create_user(*, username: str, email: str, password: str, role: Role) -> tuple[User, str]:
    """Persist the account and return it with a freshly signed token."""

    initialize_database()
    with SessionLocal() as session:
        user = UserRepository(session).create(
            username=username,
            email=email,
            password_hash=get_password_hash(password),
            role=role,
        )
    return user, create_access_token(user.id, user.role)


def main(argv: list[str] | None = None) -> None:
    """Create a user using the provided command line arguments."""

    args = parse_args(argv)

    password = args.password or getpass("Ingrese la contraseña del usuario: ")
    if not password:
        raise SystemExit("No se proporcionó una contraseña válida.")

    try:
        user, token = create_user(
            username=args.username,
            email=args.email,
            password=password,
            role=Role(args.role),
        )
    except NotificationError as exc:
        raise SystemExit(f"No se pudo crear el usuario: {exc}") from exc

    print(
        "Usuario creado exitosamente:\n"
        f"  ID: {user.id}\n"
        f"  Nombre: {user.username}\n"
        f"  Email: {user.email}\n"
        f"  Rol: {user.role.value}\n"
        f"  Token: {token}"
    )


if __name__ == "__main__":
    main()
