"""
External tool (LTI tool installation) model.
"""

from typing import Any

from sqlalchemy import JSON, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin

LTI_1_1 = "1.1"
LTI_1_3 = "1.3"


class ContextExternalToolModel(Base, TimestampMixin):
    """A tool installed in a course or account."""

    __tablename__ = "context_external_tools"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    context_type: Mapped[str] = mapped_column(String, nullable=False)  # "Course" | "Account"
    context_id: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    label: Mapped[str | None] = mapped_column(String, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Analytics identifier reported with every launch
    tool_id: Mapped[str | None] = mapped_column(String, nullable=True)
    domain: Mapped[str | None] = mapped_column(String, nullable=True)
    url: Mapped[str | None] = mapped_column(String, nullable=True)
    lti_version: Mapped[str] = mapped_column(String, default=LTI_1_3)
    client_id: Mapped[str | None] = mapped_column(String, nullable=True)
    deployment_id: Mapped[str | None] = mapped_column(String, nullable=True)
    oidc_initiation_url: Mapped[str | None] = mapped_column(String, nullable=True)
    redirect_uris: Mapped[list[str]] = mapped_column(JSON, default=list)
    eula_url: Mapped[str | None] = mapped_column(String, nullable=True)
    custom_fields: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    workflow_state: Mapped[str] = mapped_column(String, default="public")

    __table_args__ = (Index("idx_external_tools_context", "context_type", "context_id"),)

    @property
    def default_label(self) -> str:
        return self.label or self.name

    @property
    def use_1_3(self) -> bool:
        return self.lti_version == LTI_1_3

    @property
    def active(self) -> bool:
        return self.workflow_state != "deleted"
