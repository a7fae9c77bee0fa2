"""Persistence layer for helpdesk accounts."""

from sqlalchemy import func
from sqlalchemy.orm import Session

from helpdesk.domain.entities import USER_STATUS_ACTIVE, Role, User
from helpdesk.domain.errors import ValidationError
from helpdesk.infrastructure.models import UserModel

from ._guard import persistence_guard


class UserRepository:
    """Provide read access to users needed for notification fan-out."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: int) -> User | None:
        with persistence_guard(self.session, "consultar el usuario"):
            model = self.session.get(UserModel, user_id)
        return self._to_entity(model) if model else None

    def get_by_email(self, email: str) -> User | None:
        with persistence_guard(self.session, "consultar el usuario"):
            model = (
                self.session.query(UserModel)
                .filter(func.lower(UserModel.email) == email.lower())
                .first()
            )
        return self._to_entity(model) if model else None

    def create(
        self,
        *,
        username: str,
        email: str,
        password_hash: str,
        role: Role,
        status: str = USER_STATUS_ACTIVE,
    ) -> User:
        if self.get_by_email(email) is not None:
            raise ValidationError("El correo electrónico ya está registrado")
        model = UserModel(
            username=username,
            email=email,
            password=password_hash,
            role=role.value,
            status=status,
        )
        with persistence_guard(self.session, "guardar el usuario"):
            self.session.add(model)
            self.session.commit()
            self.session.refresh(model)
        return self._to_entity(model)

    def list_active_ids_by_role(self, role: Role) -> list[int]:
        """Return the ids of active users holding ``role`` in ascending order."""

        with persistence_guard(self.session, "consultar los destinatarios"):
            rows = (
                self.session.query(UserModel.id)
                .filter(
                    UserModel.role == role.value,
                    UserModel.status == USER_STATUS_ACTIVE,
                )
                .order_by(UserModel.id.asc())
                .all()
            )
        return [user_id for (user_id,) in rows]

    @staticmethod
    def _to_entity(model: UserModel) -> User:
        return User(
            id=model.id,
            username=model.username,
            email=model.email,
            role=Role.parse(model.role) or Role.CLIENT,
            status=model.status,
        )


__all__ = ["UserRepository"]
