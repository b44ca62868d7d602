"""
LTI launch audit logging.
"""

from __future__ import annotations

import logging
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession

from lms.models import (
    AccountModel,
    ContextExternalToolModel,
    CourseModel,
    LtiLaunchLogModel,
    UserModel,
)
from lms.services.contexts import context_type_name

logger = logging.getLogger(__name__)


def _name(value) -> str:
    return value.value if isinstance(value, Enum) else str(value)


class LogService:
    """Writes one ``lti_launch_logs`` row per launch."""

    def __init__(
        self,
        tool: ContextExternalToolModel,
        context: CourseModel | AccountModel,
        user: UserModel | None,
        session_id: str | None,
        launch_type: str,
        launch_url: str | None,
        message_type: str,
    ):
        self.tool = tool
        self.context = context
        self.user = user
        self.session_id = session_id
        self.launch_type = launch_type
        self.launch_url = launch_url
        self.message_type = message_type

    async def call(self, session: AsyncSession) -> LtiLaunchLogModel:
        record = LtiLaunchLogModel(
            tool_id=self.tool.id,
            context_type=context_type_name(self.context),
            context_id=self.context.id,
            user_id=self.user.id if self.user else None,
            session_id=self.session_id,
            launch_type=_name(self.launch_type),
            launch_url=self.launch_url,
            message_type=_name(self.message_type),
        )
        session.add(record)
        await session.flush()
        logger.info(
            "LTI launch tool=%s context=%s/%s user=%s type=%s message=%s",
            self.tool.id,
            record.context_type,
            record.context_id,
            record.user_id,
            record.launch_type,
            record.message_type,
        )
        return record
