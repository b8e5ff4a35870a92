"""
Organization model.

Organizations are the tenant boundary: every task and every member belongs to
exactly one organization.
"""
from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, TimestampMixin, UlidPrimaryKeyMixin


class Organization(Base, UlidPrimaryKeyMixin, TimestampMixin):
    """Organization (tenant) owning users and tasks."""
    __tablename__ = "organizations"

    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def organization_id(self) -> str:
        """An organization is its own scope when evaluated as a resource."""
        return self.id

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name={self.name!r})>"
