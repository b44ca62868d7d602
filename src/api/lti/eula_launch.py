"""
EULA launch: shows a tool's end-user license agreement inside a course.
"""

from __future__ import annotations

from starlette.responses import Response

from api.lti.controller import Controller, memoized
from api.lti.launch_services import LaunchServices
from api.lti.render import render_launch
from lms.errors import NotFound
from lms.models import ContextExternalToolModel, CourseModel
from lms.services.contexts import tool_available_in
from lms.services.lti_advantage import MessageType


class EulaLaunchController(Controller, LaunchServices):
    before_actions = (
        "require_user",
        "require_context",
        "require_tool",
        "require_access_to_context",
        "require_1_3_tool",
    )

    @memoized
    async def context(self) -> CourseModel | None:
        try:
            course_id = int(self.require_param("course_id"))
        except ValueError:
            return None
        course = await self.db.get(CourseModel, course_id)
        return course if course is not None and course.workflow_state != "deleted" else None

    @memoized
    async def tool(self) -> ContextExternalToolModel | None:
        try:
            tool_id = int(self.require_param("tool_id"))
        except ValueError:
            return None
        tool = await self.db.get(ContextExternalToolModel, tool_id)
        course = await self.context()
        if tool is None or course is None or not await tool_available_in(self.db, tool, course):
            return None
        return tool

    async def require_context(self) -> None:
        if await self.context() is None:
            raise NotFound("Course not found")

    async def require_tool(self) -> None:
        if await self.tool() is None:
            raise NotFound("Tool not found")

    async def launch(self) -> Response:
        course = await self.context()
        base = str(self.request.base_url).rstrip("/")
        lti_launch = await self.create_and_log_launch(
            message_type=MessageType.EULA,
            return_url=f"{base}/courses/{course.id}",
        )
        return render_launch(lti_launch)
