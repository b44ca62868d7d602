"""
Asset processor submission notices.

When a student submits (or an instructor asks for a resubmission notice),
every asset processor attached to the assignment gets a
``LtiAssetProcessorSubmissionNotice`` queued in the notice outbox.  Sending
the queued notices to the tools is handled outside this service.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.errors import MissingGroupmateSubmission
from lms.models import (
    AssetProcessorModel,
    AssetProcessorNoticeModel,
    AssignmentModel,
    ContextExternalToolModel,
    SubmissionModel,
    UserModel,
)
from lms.services.submissions import get_versions

logger = logging.getLogger(__name__)

SUBMISSION_NOTICE = "LtiAssetProcessorSubmissionNotice"


async def get_original_submission_for_group(
    session: AsyncSession, submission: SubmissionModel
) -> SubmissionModel:
    """
    Return the groupmate submission that was actually turned in.

    Group assignments copy each attempt to every member.  Tools should be
    notified about the copy belonging to the member who submitted, at the
    same attempt as *submission*.

    Raises:
        MissingGroupmateSubmission: If the submitter's copy (or the matching
            attempt of it) does not exist.
    """
    if submission.submitter_id is None or submission.group_id is None:
        raise MissingGroupmateSubmission(submission.id)
    if submission.submitter_id == submission.user_id:
        return submission

    result = await session.execute(
        select(SubmissionModel).where(
            SubmissionModel.assignment_id == submission.assignment_id,
            SubmissionModel.group_id == submission.group_id,
            SubmissionModel.user_id == submission.submitter_id,
        )
    )
    original = result.scalar_one_or_none()
    if original is None:
        raise MissingGroupmateSubmission(submission.id)

    if original.attempt == submission.attempt:
        return original
    for version in await get_versions(session, original):
        if version.attempt == submission.attempt:
            return version.model
    raise MissingGroupmateSubmission(submission.id)


def _notice_payload(
    submission: SubmissionModel,
    assignment: AssignmentModel,
    user: UserModel | None,
    asset_processor: AssetProcessorModel,
) -> dict[str, Any]:
    return {
        "notice_type": SUBMISSION_NOTICE,
        "activity": {"id": assignment.lti_context_id, "title": assignment.title},
        "submission": {
            "id": str(submission.id),
            "attempt": submission.attempt,
            "submitted_at": submission.submitted_at.isoformat() if submission.submitted_at else None,
            "user_id": user.lti_id if user else None,
        },
        "asset_processor": {"id": asset_processor.id, "title": asset_processor.title},
        "assets": [{"asset_id": str(attachment_id)} for attachment_id in submission.attachment_ids or []],
    }


async def active_asset_processors(
    session: AsyncSession, assignment: AssignmentModel
) -> list[AssetProcessorModel]:
    result = await session.execute(
        select(AssetProcessorModel)
        .join(
            ContextExternalToolModel,
            ContextExternalToolModel.id == AssetProcessorModel.context_external_tool_id,
        )
        .where(
            AssetProcessorModel.assignment_id == assignment.id,
            AssetProcessorModel.workflow_state == "active",
            ContextExternalToolModel.workflow_state != "deleted",
        )
        .order_by(AssetProcessorModel.id)
    )
    return list(result.scalars().all())


async def notify_asset_processors(
    session: AsyncSession,
    submission: SubmissionModel,
    asset_processor: AssetProcessorModel | None = None,
) -> list[AssetProcessorNoticeModel]:
    """
    Queue a submission notice for *asset_processor*, or for every active
    asset processor of the submission's assignment when none is given.

    Returns the queued notices.
    """
    assignment = await session.get(AssignmentModel, submission.assignment_id)
    if assignment is None:
        return []
    user = await session.get(UserModel, submission.user_id)

    processors = (
        [asset_processor]
        if asset_processor is not None
        else await active_asset_processors(session, assignment)
    )

    notices: list[AssetProcessorNoticeModel] = []
    for processor in processors:
        notice = AssetProcessorNoticeModel(
            asset_processor_id=processor.id,
            submission_id=submission.id,
            attempt=submission.attempt,
            notice_type=SUBMISSION_NOTICE,
            payload=_notice_payload(submission, assignment, user, processor),
        )
        session.add(notice)
        notices.append(notice)
        logger.info(
            "Queued %s for asset_processor=%s submission=%s attempt=%s",
            SUBMISSION_NOTICE, processor.id, submission.id, submission.attempt,
        )

    await session.flush()
    return notices
