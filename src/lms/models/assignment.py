"""
Assignment and submission models.

A submission row always holds the latest attempt; every attempt is also
snapshotted into ``submission_versions`` so older attempts can be looked up.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from .base import Base, TimestampMixin


class AssignmentModel(Base, TimestampMixin):
    """SQLAlchemy model for assignments table."""

    __tablename__ = "assignments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    course_id: Mapped[int] = mapped_column(Integer, ForeignKey("courses.id"), nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    points_possible: Mapped[float | None] = mapped_column(Float, nullable=True)
    lti_context_id: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    group_category_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    workflow_state: Mapped[str] = mapped_column(String, default="published")

    @property
    def published(self) -> bool:
        return self.workflow_state == "published"


class SubmissionModel(Base, TimestampMixin):
    """SQLAlchemy model for submissions table."""

    __tablename__ = "submissions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    assignment_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    group_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("groups.id"), nullable=True)
    # User who actually turned in a group submission
    submitter_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True
    )
    anonymous_id: Mapped[str] = mapped_column(String, nullable=False)
    attempt: Mapped[int | None] = mapped_column(Integer, nullable=True)
    submission_type: Mapped[str | None] = mapped_column(String, nullable=True)
    attachment_ids: Mapped[list[int]] = mapped_column(JSON, default=list)
    workflow_state: Mapped[str] = mapped_column(String, default="unsubmitted")
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("assignment_id", "user_id", name="uq_submission_assignment_user"),
        UniqueConstraint(
            "assignment_id", "anonymous_id", name="uq_submission_assignment_anonymous"
        ),
        Index("idx_submissions_group", "assignment_id", "group_id"),
    )


class SubmissionVersionModel(Base):
    """Snapshot of a submission as it was at one attempt."""

    __tablename__ = "submission_versions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    submission_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False
    )
    attempt: Mapped[int | None] = mapped_column(Integer, nullable=True)
    model_data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (Index("idx_submission_versions_submission", "submission_id"),)

    @property
    def model(self) -> SubmissionModel:
        """Rebuild the (detached) submission this version recorded."""
        data = dict(self.model_data)
        if isinstance(data.get("submitted_at"), str):
            data["submitted_at"] = datetime.fromisoformat(data["submitted_at"])
        return SubmissionModel(**data)
