"""
LTI launch audit log.

One row per launch rendered by the LMS.  Rows are only ever inserted.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from .base import Base


class LtiLaunchLogModel(Base):
    """Audit record of a single tool launch."""

    __tablename__ = "lti_launch_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tool_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("context_external_tools.id"), nullable=False
    )
    context_type: Mapped[str] = mapped_column(String, nullable=False)
    context_id: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    session_id: Mapped[str | None] = mapped_column(String, nullable=True)
    launch_type: Mapped[str] = mapped_column(String, nullable=False)
    launch_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    message_type: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("idx_lti_launch_logs_tool", "tool_id"),
        Index("idx_lti_launch_logs_context", "context_type", "context_id"),
    )
