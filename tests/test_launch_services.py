"""Tests for launch construction, message dispatch and launch logging."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from api.auth import RequestContext
from api.lti.launch_services import Launch, LaunchServices, build_jwt_message
from lms.errors import Lti13ToolRequired, Unauthorized, UnsupportedLaunchMessageType
from lms.models import LTI_1_1, LtiLaunchLogModel
from lms.services.lti_advantage import MessageType
from lms.services.lti_advantage.adapter import CACHE_KEY_PREFIX
from lms.services.lti_advantage.keys import decode_message_hint
from lms.services.lti_advantage.messages import CLAIM_CUSTOM, CLAIM_MESSAGE_TYPE, LaunchType

from conftest import TEST_SECRET


class StubLauncher(LaunchServices):
    """Minimal controller exposing what ``LaunchServices`` needs."""

    def __init__(self, db, context, tool, user, root_account, user_agent="python-httpx"):
        self.db = db
        self._context = context
        self._tool = tool
        self.request_context = RequestContext(
            current_user=user,
            domain_root_account=root_account,
            session_id="sess-test",
            host="test",
            user_agent=user_agent,
        )

    current_user = property(lambda self: self.request_context.current_user)
    current_pseudonym = property(lambda self: self.request_context.current_pseudonym)
    domain_root_account = property(lambda self: self.request_context.domain_root_account)
    session_id = property(lambda self: self.request_context.session_id)
    request_host = property(lambda self: self.request_context.host)

    async def context(self):
        return self._context

    async def tool(self):
        return self._tool

    async def require_user(self):
        if self.current_user is None:
            raise Unauthorized()


@pytest.fixture
def launcher(async_session, course_setup, patched_settings, installed_storage):
    s = course_setup

    def _make(**kwargs):
        values = {
            "db": async_session,
            "context": s.course,
            "tool": s.tool,
            "user": s.teacher,
            "root_account": s.account,
        }
        values.update(kwargs)
        return StubLauncher(**values)

    return _make


class TestBuildJwtMessage:
    @pytest.mark.parametrize(
        "message_type,operation",
        [
            (MessageType.ASSET_PROCESSOR_SETTINGS, "generate_post_payload_for_asset_processor_settings"),
            (MessageType.REPORT_REVIEW, "generate_post_payload_for_report_review"),
            (MessageType.EULA, "generate_post_payload_for_eula"),
            ("LtiEulaRequest", "generate_post_payload_for_eula"),
        ],
    )
    async def test_dispatch(self, message_type, operation):
        adapter = MagicMock()
        setattr(adapter, operation, AsyncMock(return_value={"lti_message_hint": "x"}))
        assert await build_jwt_message(adapter, message_type) == {"lti_message_hint": "x"}
        getattr(adapter, operation).assert_awaited_once()

    async def test_unsupported_type_carries_exact_value(self):
        adapter = MagicMock()
        with pytest.raises(UnsupportedLaunchMessageType) as exc_info:
            await build_jwt_message(adapter, "LtiResourceLinkRequest")
        assert exc_info.value.message_type == "LtiResourceLinkRequest"
        assert "LtiResourceLinkRequest" in str(exc_info.value)


class TestCreateAndLogLaunch:
    async def test_eula_launch(self, launcher, course_setup, installed_storage, count_rows, async_session):
        s = course_setup
        launch = await launcher().create_and_log_launch(
            message_type=MessageType.EULA, return_url="http://test/courses/1"
        )
        await async_session.commit()

        assert isinstance(launch, Launch)
        assert launch.link_text == "Plagiarism Checker"
        assert launch.analytics_id == "plagiarism-checker"
        assert launch.resource_url == "https://tool.example.com/login"
        assert launch.params["target_link_uri"] == "https://tool.example.com/eula"
        assert launch.params["login_hint"] == s.teacher.lti_id
        assert launch.params["client_id"] == s.tool.client_id
        assert launch.params["lti_storage_target"] == "_parent"

        hint = decode_message_hint(launch.params["lti_message_hint"], TEST_SECRET)
        assert hint["context_type"] == "Course"
        assert hint["context_id"] == s.course.id
        assert hint["domain"] == "test"
        cached = installed_storage.get_value(f"{CACHE_KEY_PREFIX}{hint['verifier']}")
        assert cached["claims"][CLAIM_MESSAGE_TYPE] == "LtiEulaRequest"
        assert cached["tool_id"] == s.tool.id

        assert await count_rows(LtiLaunchLogModel) == 1
        assert await count_rows(
            LtiLaunchLogModel,
            LtiLaunchLogModel.message_type == "LtiEulaRequest",
            LtiLaunchLogModel.launch_type == LaunchType.DIRECT_LINK.value,
            LtiLaunchLogModel.session_id == "sess-test",
        ) == 1

    async def test_mobile_webview_omits_storage_target(self, launcher):
        launch = await launcher(user_agent="lms-ios/7.1").create_and_log_launch(
            message_type=MessageType.EULA, return_url=None
        )
        assert "lti_storage_target" not in launch.params

    async def test_unsupported_type_logs_nothing(self, launcher, async_session, count_rows):
        with pytest.raises(UnsupportedLaunchMessageType):
            await launcher().create_and_log_launch(message_type="LtiFooRequest", return_url=None)
        await async_session.commit()
        assert await count_rows(LtiLaunchLogModel) == 0

    async def test_custom_fields_are_expanded(self, launcher, seed, course_setup, installed_storage):
        tool = await seed.tool(
            course_setup.course,
            custom_fields={"person": "$Person.name.full", "link": "$ResourceLink.title", "fixed": "1"},
        )
        launch = await launcher(tool=tool).create_and_log_launch(
            message_type=MessageType.EULA, return_url=None
        )
        hint = decode_message_hint(launch.params["lti_message_hint"], TEST_SECRET)
        claims = installed_storage.get_value(f"{CACHE_KEY_PREFIX}{hint['verifier']}")["claims"]
        assert claims[CLAIM_CUSTOM] == {"person": "Grace Hopper", "link": "Plagiarism Checker", "fixed": "1"}


class TestAccessFilters:
    async def test_student_may_read_course(self, launcher, course_setup):
        await launcher(user=course_setup.student).require_access_to_context()

    async def test_outsider_rejected(self, launcher, seed):
        outsider = await seed.user("Outsider")
        with pytest.raises(Unauthorized):
            await launcher(user=outsider).require_access_to_context()

    async def test_account_context_requires_user(self, launcher, course_setup):
        with pytest.raises(Unauthorized):
            await launcher(context=course_setup.account, user=None).require_access_to_context()

    async def test_1_1_tool_rejected(self, launcher, seed, course_setup):
        legacy = await seed.tool(course_setup.course, lti_version=LTI_1_1)
        with pytest.raises(Lti13ToolRequired):
            await launcher(tool=legacy).require_1_3_tool()
