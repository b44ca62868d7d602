"""
Course, enrollment and group models.
"""

from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class EnrollmentType:
    """Enrollment type names."""

    STUDENT = "StudentEnrollment"
    TEACHER = "TeacherEnrollment"
    TA = "TaEnrollment"
    DESIGNER = "DesignerEnrollment"
    OBSERVER = "ObserverEnrollment"


class CourseModel(Base, TimestampMixin):
    """SQLAlchemy model for courses table."""

    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(Integer, ForeignKey("accounts.id"), nullable=False)
    root_account_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("accounts.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    course_code: Mapped[str | None] = mapped_column(String, nullable=True)
    lti_context_id: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    workflow_state: Mapped[str] = mapped_column(String, default="available")


class EnrollmentModel(Base, TimestampMixin):
    """A user's role in a course."""

    __tablename__ = "enrollments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    course_id: Mapped[int] = mapped_column(Integer, ForeignKey("courses.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    type: Mapped[str] = mapped_column(String, nullable=False)
    workflow_state: Mapped[str] = mapped_column(String, default="active")

    __table_args__ = (
        UniqueConstraint("course_id", "user_id", "type", name="uq_enrollment_course_user_type"),
        Index("idx_enrollments_user", "user_id"),
    )


class GroupModel(Base, TimestampMixin):
    """A student group within a course group category."""

    __tablename__ = "groups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    course_id: Mapped[int] = mapped_column(Integer, ForeignKey("courses.id"), nullable=False)
    group_category_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    workflow_state: Mapped[str] = mapped_column(String, default="available")


class GroupMembershipModel(Base, TimestampMixin):
    """SQLAlchemy model for group_memberships table."""

    __tablename__ = "group_memberships"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    group_id: Mapped[int] = mapped_column(Integer, ForeignKey("groups.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    workflow_state: Mapped[str] = mapped_column(String, default="accepted")

    __table_args__ = (UniqueConstraint("group_id", "user_id", name="uq_group_membership"),)
