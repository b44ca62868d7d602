"""
User and login (pseudonym) models.
"""

from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class UserModel(Base, TimestampMixin):
    """SQLAlchemy model for users table."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    short_name: Mapped[str | None] = mapped_column(String, nullable=True)
    sortable_name: Mapped[str | None] = mapped_column(String, nullable=True)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    # Stable opaque identifier sent to tools as the ``sub`` claim
    lti_id: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    locale: Mapped[str | None] = mapped_column(String, nullable=True)
    workflow_state: Mapped[str] = mapped_column(String, default="registered")

    @property
    def given_name(self) -> str:
        if self.sortable_name and "," in self.sortable_name:
            return self.sortable_name.split(",", 1)[1].strip()
        return self.name.split(" ", 1)[0]

    @property
    def family_name(self) -> str:
        if self.sortable_name and "," in self.sortable_name:
            return self.sortable_name.split(",", 1)[0].strip()
        parts = self.name.rsplit(" ", 1)
        return parts[1] if len(parts) > 1 else ""


class PseudonymModel(Base, TimestampMixin):
    """A login for a user within a root account."""

    __tablename__ = "pseudonyms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    account_id: Mapped[int] = mapped_column(Integer, ForeignKey("accounts.id"), nullable=False)
    unique_id: Mapped[str] = mapped_column(String, nullable=False)
    sis_user_id: Mapped[str | None] = mapped_column(String, nullable=True)
    workflow_state: Mapped[str] = mapped_column(String, default="active")

    __table_args__ = (Index("idx_pseudonyms_user", "user_id"),)
