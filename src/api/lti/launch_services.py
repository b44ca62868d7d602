"""
Common functionality for launching LTI tools.

Controllers that render LTI launches (asset processor settings, report
review, EULA) subclass ``LaunchServices`` and implement ``context`` and
``tool``.  ``create_and_log_launch`` builds the ``Launch``, the signed
message behind it, and the audit log entry.

Usage::

    class MyLaunchController(Controller, LaunchServices):
        async def context(self): ...
        async def tool(self): ...

        async def launch_tool(self):
            launch = await self.create_and_log_launch(
                message_type=MessageType.EULA,
                return_url=course_url,
            )
            return render_launch(launch)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from api.lti.config import get_launch_config
from api.lti.storage import get_launch_data_storage
from lms.errors import Lti13ToolRequired, Unauthorized, UnsupportedLaunchMessageType
from lms.models import AccountModel, ContextExternalToolModel, CourseModel
from lms.services import permissions
from lms.services.contexts import context_host
from lms.services.log_service import LogService
from lms.services.lti_advantage import LtiAdvantageAdapter, MessageType
from lms.services.lti_advantage.messages import LaunchType
from lms.services.variable_expander import VariableExpander

logger = logging.getLogger(__name__)


@dataclass
class Launch:
    """A single tool launch, ready to be rendered as an auto-submitting form."""

    link_text: str | None = None
    analytics_id: str | None = None
    resource_url: str | None = None
    params: dict[str, Any] = field(default_factory=dict)


class LaunchContextProvider(ABC):
    """What a launching controller must supply."""

    @abstractmethod
    async def context(self) -> CourseModel | AccountModel:
        ...

    @abstractmethod
    async def tool(self) -> ContextExternalToolModel:
        ...


async def build_jwt_message(adapter: LtiAdvantageAdapter, message_type: Any) -> dict[str, Any]:
    """Run the adapter operation for *message_type* and return its launch payload."""
    if message_type == MessageType.ASSET_PROCESSOR_SETTINGS:
        return await adapter.generate_post_payload_for_asset_processor_settings()
    if message_type == MessageType.REPORT_REVIEW:
        return await adapter.generate_post_payload_for_report_review()
    if message_type == MessageType.EULA:
        return await adapter.generate_post_payload_for_eula()
    raise UnsupportedLaunchMessageType(message_type)


class LaunchServices(LaunchContextProvider):
    """Mixin for controllers; expects ``Controller`` attributes (db, request_context, ...)."""

    async def create_and_log_launch(
        self,
        message_type: Any,
        return_url: str | None,
        adapter_opts: dict[str, Any] | None = None,
        expander_opts: dict[str, Any] | None = None,
        log_launch_type: LaunchType | str = LaunchType.DIRECT_LINK,
    ) -> Launch:
        tool = await self.tool()
        lti_launch = Launch(link_text=tool.default_label, analytics_id=tool.tool_id)

        lti_adapter = await self.create_lti_adapter(
            return_url=return_url,
            lti_launch=lti_launch,
            opts=adapter_opts or {},
            expander_opts=expander_opts or {},
        )
        lti_launch.params = await build_jwt_message(lti_adapter, message_type)
        lti_launch.resource_url = lti_adapter.launch_url

        await self.log_launch(
            message_type=message_type,
            launch_type=log_launch_type,
            launch_url=lti_launch.params["target_link_uri"],
        )
        return lti_launch

    async def create_lti_adapter(
        self,
        return_url: str | None,
        lti_launch: Launch,
        opts: dict[str, Any] | None = None,
        expander_opts: dict[str, Any] | None = None,
    ) -> LtiAdvantageAdapter:
        default_opts = {
            "domain": context_host(self.domain_root_account, self.request_host),
        }

        return LtiAdvantageAdapter(
            tool=await self.tool(),
            user=self.current_user,
            context=await self.context(),
            return_url=return_url,
            expander=await self.create_variable_expander(
                lti_launch=lti_launch, expander_opts=expander_opts or {}
            ),
            include_storage_target=not self.request_context.in_lti_mobile_webview,
            opts={**default_opts, **(opts or {})},
            storage=get_launch_data_storage(),
            config=get_launch_config(),
        )

    async def create_variable_expander(
        self, lti_launch: Launch, expander_opts: dict[str, Any] | None = None
    ) -> VariableExpander:
        return VariableExpander(
            self.domain_root_account,
            await self.context(),
            self,
            {
                "current_user": self.current_user,
                "current_pseudonym": self.current_pseudonym,
                "tool": await self.tool(),
                "launch": lti_launch,
                **(expander_opts or {}),
            },
        )

    async def log_launch(self, message_type: Any, launch_type: Any, launch_url: str | None) -> None:
        await LogService(
            tool=await self.tool(),
            context=await self.context(),
            user=self.current_user,
            session_id=self.session_id,
            launch_type=launch_type,
            launch_url=launch_url,
            message_type=message_type,
        ).call(self.db)

    async def require_access_to_context(self) -> None:
        context = await self.context()
        if isinstance(context, AccountModel):
            await self.require_user()
        elif not await permissions.grants_right(
            self.db, context, self.current_user, permissions.READ
        ):
            raise Unauthorized("User may not read this context")

    async def require_1_3_tool(self) -> None:
        if not (await self.tool()).use_1_3:
            raise Lti13ToolRequired("Only LTI 1.3 tools support this launch")
