"""
Asset processor endpoints.

``AssetProcessorResolution`` resolves everything an asset processor request
refers to (processor, assignment, course, student, attempt, submission) and
holds the access checks shared by the notice and launch controllers.
"""

from __future__ import annotations

import logging

from starlette.responses import Response

from api.lti.controller import Controller, memoized
from lms.errors import MissingRequiredPermission, NotFound
from lms.models import AssetProcessorModel, AssignmentModel, CourseModel, SubmissionModel, UserModel
from lms.services import permissions
from lms.services.asset_processor_notifier import (
    get_original_submission_for_group,
    notify_asset_processors,
)
from lms.services.submissions import (
    find_by_anonymous_id,
    is_assigned,
    parse_attempt,
    submission_at_attempt,
    submission_for_student,
)

logger = logging.getLogger(__name__)

ANONYMOUS_PREFIX = "anonymous:"


class AssetProcessorResolution(Controller):
    """Request-scoped lookups for ``/asset_processors/{asset_processor_id}/...`` routes."""

    _current_submission: SubmissionModel | None = None

    # ── Asset processor / assignment / course ────────────────────────

    @memoized
    async def asset_processor(self) -> AssetProcessorModel | None:
        try:
            asset_processor_id = int(self.require_param("asset_processor_id"))
        except ValueError:
            return None
        asset_processor = await self.db.get(AssetProcessorModel, asset_processor_id)
        if asset_processor is None or asset_processor.workflow_state != "active":
            return None
        return asset_processor

    @memoized
    async def assignment(self) -> AssignmentModel | None:
        asset_processor = await self.asset_processor()
        if asset_processor is None:
            return None
        return await self.db.get(AssignmentModel, asset_processor.assignment_id)

    @memoized
    async def context(self) -> CourseModel | None:
        assignment = await self.assignment()
        if assignment is None:
            return None
        return await self.db.get(CourseModel, assignment.course_id)

    # ── Student / attempt / submission ───────────────────────────────

    def student_id(self) -> str:
        """``<user id>`` or ``anonymous:<anonymous id>``."""
        return str(self.require_param("student_id"))

    def anonymous_student_id(self) -> bool:
        return self.student_id().startswith(ANONYMOUS_PREFIX)

    def extract_anonymous_id(self) -> str:
        return self.student_id().replace(ANONYMOUS_PREFIX, "", 1)

    @memoized
    async def student(self) -> UserModel | None:
        assignment = await self.assignment()
        if self.anonymous_student_id():
            if self._current_submission is None:
                self._current_submission = await find_by_anonymous_id(
                    self.db, assignment, self.extract_anonymous_id()
                )
            if self._current_submission is None:
                return None
            return await self.db.get(UserModel, self._current_submission.user_id)

        try:
            user_id = int(self.student_id())
        except ValueError:
            return None
        return await self.db.get(UserModel, user_id)

    @memoized
    async def attempt(self) -> int:
        """Requested attempt; "latest", 0, or any invalid value mean the latest."""
        return parse_attempt(self.params.get("attempt"))

    @memoized
    async def submission(self) -> SubmissionModel | None:
        if self._current_submission is None:
            self._current_submission = await submission_for_student(
                self.db, await self.assignment(), await self.student()
            )
        current = self._current_submission
        attempt = await self.attempt()
        if current is not None and attempt > 0:
            return await submission_at_attempt(self.db, current, attempt)
        return current

    # ── Filters ──────────────────────────────────────────────────────

    async def require_feature_enabled(self) -> None:
        if not self.settings.lti_asset_processor_enabled:
            raise NotFound("lti_asset_processor feature is disabled")

    async def require_asset_processor(self) -> None:
        if await self.asset_processor() is None:
            raise NotFound("Asset processor not found")

    async def require_context(self) -> None:
        if await self.assignment() is None or await self.context() is None:
            raise NotFound("Assignment context not found")

    async def require_grading_access(self) -> None:
        context = await self.context()
        if isinstance(context, CourseModel) and await permissions.grants_any_right(
            self.db,
            context,
            self.current_user,
            permissions.MANAGE_GRADES,
            permissions.VIEW_ALL_GRADES,
        ):
            return
        raise MissingRequiredPermission("missing_required_permission")

    async def require_submission(self) -> None:
        student = await self.student()
        if student is None or not await is_assigned(self.db, await self.assignment(), student):
            raise NotFound("Student not found or not assigned")
        if await self.submission() is None:
            raise NotFound("Submission not found")


class AssetProcessorController(AssetProcessorResolution):
    """``POST /api/lti/asset_processors/{asset_processor_id}/resubmit_notice``."""

    before_actions = (
        "require_feature_enabled",
        "require_user",
        "require_asset_processor",
        "require_context",
        "require_grading_access",
        "require_submission",
    )

    async def resubmit_notice(self) -> Response:
        submission = await self.submission()
        if submission.group_id is not None:
            submission_to_notify = await get_original_submission_for_group(self.db, submission)
        else:
            submission_to_notify = submission

        await notify_asset_processors(self.db, submission_to_notify, await self.asset_processor())
        logger.info(
            "Resubmit notice for asset_processor=%s submission=%s by user=%s",
            (await self.asset_processor()).id,
            submission_to_notify.id,
            self.current_user.id,
        )
        return Response(status_code=204)
