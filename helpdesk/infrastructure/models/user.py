"""SQLAlchemy model for the users table."""

from sqlalchemy import Column, DateTime, Integer, String, func

from helpdesk.infrastructure.database import Base


class UserModel(Base):
    """Database representation of a helpdesk account."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), nullable=False)
    email = Column(String(120), nullable=False, unique=True, index=True)
    password = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="active")
    created_at = Column(DateTime, nullable=False, server_default=func.now())


__all__ = ["UserModel"]
