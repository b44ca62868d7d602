"""
Account models.

Accounts form a tree; an account without a parent is a root account, the
unit a request's domain resolves to.
"""

from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class AccountModel(Base, TimestampMixin):
    """SQLAlchemy model for accounts table."""

    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    parent_account_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("accounts.id"), nullable=True
    )
    # Host the root account is served from, e.g. "school.lms.example.com"
    domain: Mapped[str | None] = mapped_column(String, nullable=True)
    lti_guid: Mapped[str] = mapped_column(String, nullable=False)
    workflow_state: Mapped[str] = mapped_column(String, default="active")

    __table_args__ = (Index("idx_accounts_domain", "domain"),)

    @property
    def is_root_account(self) -> bool:
        return self.parent_account_id is None


class AccountUserModel(Base, TimestampMixin):
    """Account-level admin role assignment."""

    __tablename__ = "account_users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(Integer, ForeignKey("accounts.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    role: Mapped[str] = mapped_column(String, default="AccountAdmin")
    workflow_state: Mapped[str] = mapped_column(String, default="active")

    __table_args__ = (UniqueConstraint("account_id", "user_id", name="uq_account_user"),)
