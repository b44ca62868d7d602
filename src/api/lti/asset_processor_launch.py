"""
Asset processor launches: the tool's settings page for an assignment and
its report for one student's submission.
"""

from __future__ import annotations

from starlette.responses import Response

from api.lti.asset_processors import AssetProcessorResolution
from api.lti.controller import memoized
from api.lti.launch_services import LaunchServices
from api.lti.render import render_launch
from lms.errors import NotFound
from lms.models import ContextExternalToolModel
from lms.services.lti_advantage import MessageType
from lms.services.lti_advantage.messages import LaunchType


class AssetProcessorLaunchController(AssetProcessorResolution, LaunchServices):
    """Renders settings and report review launches for an asset processor."""

    before_actions = (
        "require_feature_enabled",
        "require_user",
        "require_asset_processor",
        "require_context",
        "require_tool",
        "require_grading_access",
        "require_1_3_tool",
    )

    @memoized
    async def tool(self) -> ContextExternalToolModel | None:
        asset_processor = await self.asset_processor()
        if asset_processor is None:
            return None
        tool = await self.db.get(ContextExternalToolModel, asset_processor.context_external_tool_id)
        return tool if tool is not None and tool.active else None

    async def require_tool(self) -> None:
        if await self.tool() is None:
            raise NotFound("Tool not found")

    async def assignment_url(self) -> str:
        assignment = await self.assignment()
        base = str(self.request.base_url).rstrip("/")
        return f"{base}/courses/{assignment.course_id}/assignments/{assignment.id}"

    async def launch_settings(self) -> Response:
        assignment = await self.assignment()
        launch = await self.create_and_log_launch(
            message_type=MessageType.ASSET_PROCESSOR_SETTINGS,
            return_url=await self.assignment_url(),
            adapter_opts={"asset_processor": await self.asset_processor(), "assignment": assignment},
            expander_opts={"assignment": assignment},
        )
        return render_launch(launch)

    async def launch_report(self) -> Response:
        await self.require_submission()
        assignment = await self.assignment()
        launch = await self.create_and_log_launch(
            message_type=MessageType.REPORT_REVIEW,
            return_url=await self.assignment_url(),
            adapter_opts={
                "asset_processor": await self.asset_processor(),
                "assignment": assignment,
                "submission": await self.submission(),
                "student": await self.student(),
                "asset_id": self.params.get("asset_id"),
            },
            expander_opts={"assignment": assignment},
            log_launch_type=LaunchType.INDIRECT_LINK,
        )
        return render_launch(launch)
