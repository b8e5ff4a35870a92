"""
User model with ULID primary keys.
"""
from datetime import datetime
from sqlalchemy import String, Boolean, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, TimestampMixin, UlidPrimaryKeyMixin
from app.features.permissions.registry import Role


class User(Base, UlidPrimaryKeyMixin, TimestampMixin):
    """
    User model representing authenticated users.

    A user belongs to at most one organization and holds exactly one role in it.
    Users without an organization keep the VIEWER role until they create or join one.
    """
    __tablename__ = "users"

    # Credentials
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # Profile
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Authorization
    role: Mapped[Role] = mapped_column(SQLEnum(Role), default=Role.VIEWER, nullable=False)
    organization_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    # Status flags
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Track last login
    last_login_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email!r}, role={self.role}, org_id={self.organization_id})>"
