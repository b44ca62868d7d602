"""
Submission lookup and attempt history.

Handles student submissions per assignment, the per-attempt version
history, and the "is this assignment assigned to the student" check.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.models import (
    AssignmentModel,
    EnrollmentModel,
    EnrollmentType,
    GroupMembershipModel,
    GroupModel,
    SubmissionModel,
    SubmissionVersionModel,
    UserModel,
)
from lms.utils.ids import generate_anonymous_id

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_attempt(value: Any) -> int:
    """
    Lenient integer parse of an ``attempt`` request parameter.

    Leading digits are used and anything unparseable is 0, so "latest",
    "", None and "abc" all mean "latest attempt".

    Examples:
        >>> parse_attempt("3")
        3
        >>> parse_attempt("latest")
        0
        >>> parse_attempt(None)
        0
    """
    if value is None:
        return 0
    if isinstance(value, int):
        return value
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else 0


async def submission_for_student(
    session: AsyncSession, assignment: AssignmentModel, user: UserModel | None
) -> SubmissionModel | None:
    if user is None:
        return None
    result = await session.execute(
        select(SubmissionModel).where(
            SubmissionModel.assignment_id == assignment.id,
            SubmissionModel.user_id == user.id,
        )
    )
    return result.scalar_one_or_none()


async def find_by_anonymous_id(
    session: AsyncSession, assignment: AssignmentModel, anonymous_id: str
) -> SubmissionModel | None:
    result = await session.execute(
        select(SubmissionModel).where(
            SubmissionModel.assignment_id == assignment.id,
            SubmissionModel.anonymous_id == anonymous_id,
        )
    )
    return result.scalars().first()


async def get_versions(
    session: AsyncSession, submission: SubmissionModel
) -> list[SubmissionVersionModel]:
    """Version history of a submission, oldest first."""
    result = await session.execute(
        select(SubmissionVersionModel)
        .where(SubmissionVersionModel.submission_id == submission.id)
        .order_by(SubmissionVersionModel.id)
    )
    return list(result.scalars().all())


async def submission_at_attempt(
    session: AsyncSession, submission: SubmissionModel, attempt: int
) -> SubmissionModel:
    """
    The submission as it was at *attempt*.

    Non-positive attempts, and attempts with no recorded version, give the
    latest submission.
    """
    if attempt <= 0:
        return submission
    for version in await get_versions(session, submission):
        model = version.model
        if model.attempt == attempt:
            return model
    return submission


async def is_assigned(
    session: AsyncSession, assignment: AssignmentModel, user: UserModel
) -> bool:
    """Whether *user* is an active student the published assignment applies to."""
    if not assignment.published:
        return False
    result = await session.execute(
        select(func.count(EnrollmentModel.id)).where(
            EnrollmentModel.course_id == assignment.course_id,
            EnrollmentModel.user_id == user.id,
            EnrollmentModel.type == EnrollmentType.STUDENT,
            EnrollmentModel.workflow_state == "active",
        )
    )
    return (result.scalar() or 0) > 0


async def _group_for(
    session: AsyncSession, assignment: AssignmentModel, user: UserModel
) -> GroupModel | None:
    if assignment.group_category_id is None:
        return None
    result = await session.execute(
        select(GroupModel)
        .join(GroupMembershipModel, GroupMembershipModel.group_id == GroupModel.id)
        .where(
            GroupModel.course_id == assignment.course_id,
            GroupModel.group_category_id == assignment.group_category_id,
            GroupMembershipModel.user_id == user.id,
            GroupMembershipModel.workflow_state == "accepted",
        )
    )
    return result.scalars().first()


async def _group_member_ids(session: AsyncSession, group: GroupModel) -> list[int]:
    result = await session.execute(
        select(GroupMembershipModel.user_id)
        .where(
            GroupMembershipModel.group_id == group.id,
            GroupMembershipModel.workflow_state == "accepted",
        )
        .order_by(GroupMembershipModel.user_id)
    )
    return list(result.scalars().all())


async def unique_anonymous_id(session: AsyncSession, assignment: AssignmentModel) -> str:
    """An anonymous id no other submission to *assignment* uses yet."""
    result = await session.execute(
        select(SubmissionModel.anonymous_id).where(SubmissionModel.assignment_id == assignment.id)
    )
    taken = set(result.scalars().all())
    anonymous_id = generate_anonymous_id()
    while anonymous_id in taken:
        anonymous_id = generate_anonymous_id()
    return anonymous_id


_SNAPSHOT_FIELDS = (
    "id",
    "assignment_id",
    "user_id",
    "group_id",
    "submitter_id",
    "anonymous_id",
    "attempt",
    "submission_type",
    "attachment_ids",
    "workflow_state",
    "submitted_at",
)


def _snapshot(submission: SubmissionModel) -> dict[str, Any]:
    data = {field: getattr(submission, field) for field in _SNAPSHOT_FIELDS}
    if isinstance(data["submitted_at"], datetime):
        data["submitted_at"] = data["submitted_at"].isoformat()
    return data


async def _submit_one(
    session: AsyncSession,
    assignment: AssignmentModel,
    user_id: int,
    submitted_at: datetime,
    submission_type: str,
    attachment_ids: list[int],
    group: GroupModel | None,
    submitter_id: int,
) -> SubmissionModel:
    result = await session.execute(
        select(SubmissionModel).where(
            SubmissionModel.assignment_id == assignment.id,
            SubmissionModel.user_id == user_id,
        )
    )
    submission = result.scalar_one_or_none()
    if submission is None:
        submission = SubmissionModel(
            assignment_id=assignment.id,
            user_id=user_id,
            anonymous_id=await unique_anonymous_id(session, assignment),
        )
        session.add(submission)

    submission.attempt = (submission.attempt or 0) + 1
    submission.workflow_state = "submitted"
    submission.submitted_at = submitted_at
    submission.submission_type = submission_type
    submission.attachment_ids = list(attachment_ids)
    submission.group_id = group.id if group else None
    submission.submitter_id = submitter_id if group else None
    await session.flush()

    session.add(
        SubmissionVersionModel(
            submission_id=submission.id,
            attempt=submission.attempt,
            model_data=_snapshot(submission),
        )
    )
    await session.flush()
    return submission


async def submit(
    session: AsyncSession,
    assignment: AssignmentModel,
    user: UserModel,
    submission_type: str = "online_upload",
    attachment_ids: list[int] | None = None,
    submitted_at: datetime | None = None,
) -> SubmissionModel:
    """
    Record a new attempt by *user*.

    For group assignments every member of the user's group gets a copy of
    the attempt, each marked with the user as submitter.  Returns the
    user's own submission.
    """
    submitted_at = submitted_at or datetime.now(timezone.utc)
    attachment_ids = attachment_ids or []
    group = await _group_for(session, assignment, user)

    member_ids = await _group_member_ids(session, group) if group else [user.id]
    if user.id not in member_ids:
        member_ids.append(user.id)

    submissions: dict[int, SubmissionModel] = {}
    for member_id in member_ids:
        submissions[member_id] = await _submit_one(
            session,
            assignment,
            member_id,
            submitted_at,
            submission_type,
            attachment_ids,
            group,
            submitter_id=user.id,
        )
    return submissions[user.id]
