"""
Profile and credential tables of the local backend.
"""

from sqlalchemy import String, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from housing.database import Base
import uuid
from typing import Optional


class AuthUser(Base):
    """
    Credentials for the local auth provider.
    A hosted backend keeps these in its own auth schema.
    """

    __tablename__ = "auth_users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True
    )

    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False
    )


class Profile(Base):
    """Landlord/student metadata keyed by the auth user id."""

    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("auth_users.id", ondelete="CASCADE"),
        primary_key=True
    )

    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="student",
        index=True,
        comment="landlord or student"
    )
