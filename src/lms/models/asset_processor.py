"""
Asset processor models.

An asset processor attaches an LTI tool to an assignment so the tool can
review submitted files.  Notices about submissions are queued in an outbox
table for delivery to the tool.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from .base import Base, TimestampMixin


class AssetProcessorModel(Base, TimestampMixin):
    """SQLAlchemy model for lti_asset_processors table."""

    __tablename__ = "lti_asset_processors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    assignment_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False
    )
    context_external_tool_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("context_external_tools.id"), nullable=False
    )
    url: Mapped[str | None] = mapped_column(String, nullable=True)
    title: Mapped[str | None] = mapped_column(String, nullable=True)
    text: Mapped[str | None] = mapped_column(Text, nullable=True)
    custom: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    workflow_state: Mapped[str] = mapped_column(String, default="active")

    __table_args__ = (Index("idx_asset_processors_assignment", "assignment_id"),)


class AssetProcessorNoticeModel(Base):
    """A submission notice waiting to be delivered to an asset processor's tool."""

    __tablename__ = "lti_asset_processor_notices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    asset_processor_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("lti_asset_processors.id", ondelete="CASCADE"), nullable=False
    )
    submission_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False
    )
    attempt: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notice_type: Mapped[str] = mapped_column(String, nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    workflow_state: Mapped[str] = mapped_column(String, default="pending")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("idx_asset_processor_notices_processor", "asset_processor_id", "workflow_state"),
    )
