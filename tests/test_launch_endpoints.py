"""Tests for the asset processor and EULA launch endpoints."""

import pytest

from lms.models import LTI_1_1, LtiLaunchLogModel
from lms.services.lti_advantage.adapter import CACHE_KEY_PREFIX
from lms.services.lti_advantage.keys import decode_message_hint
from lms.services.lti_advantage.messages import (
    CLAIM_ACTIVITY,
    CLAIM_FOR_USER,
    CLAIM_MESSAGE_TYPE,
    CLAIM_ROLES,
    CLAIM_SUBMISSION,
    CLAIM_TARGET_LINK_URI,
    ROLE_INSTRUCTOR,
)
from lms.services.submissions import submit

from conftest import TEST_ISSUER, TEST_SECRET

JSON = {"Accept": "application/json"}


def cached_claims(storage, params) -> dict:
    hint = decode_message_hint(params["lti_message_hint"], TEST_SECRET)
    return storage.get_value(f"{CACHE_KEY_PREFIX}{hint['verifier']}")["claims"]


class TestAssetProcessorSettingsLaunch:
    async def test_renders_login_form(self, client, login, course_setup, form_fields, installed_storage, count_rows):
        s = course_setup
        resp = await client.get(
            f"/api/lti/asset_processors/{s.asset_processor.id}/launch", headers=login(s.teacher)
        )
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/html")
        assert resp.headers["cache-control"] == "no-store"

        action, params = form_fields(resp.text)
        assert action == "https://tool.example.com/login"
        assert params["iss"] == TEST_ISSUER
        assert params["target_link_uri"] == "https://tool.example.com/asset_processor"
        assert params["deployment_id"] == "1:abc"

        claims = cached_claims(installed_storage, params)
        assert claims[CLAIM_MESSAGE_TYPE] == "LtiAssetProcessorSettingsRequest"
        assert claims[CLAIM_ACTIVITY]["id"] == s.assignment.lti_context_id
        assert ROLE_INSTRUCTOR in claims[CLAIM_ROLES]
        assert "nonce" not in claims

        assert await count_rows(
            LtiLaunchLogModel,
            LtiLaunchLogModel.message_type == "LtiAssetProcessorSettingsRequest",
            LtiLaunchLogModel.launch_type == "direct_link",
            LtiLaunchLogModel.user_id == s.teacher.id,
        ) == 1

    async def test_student_forbidden(self, client, login, course_setup, count_rows):
        s = course_setup
        resp = await client.get(
            f"/api/lti/asset_processors/{s.asset_processor.id}/launch",
            headers={**login(s.student), **JSON},
        )
        assert resp.status_code == 403
        assert await count_rows(LtiLaunchLogModel) == 0

    async def test_1_1_tool_rejected(self, client, login, seed, course_setup):
        s = course_setup
        legacy = await seed.tool(s.course, lti_version=LTI_1_1)
        processor = await seed.asset_processor(s.assignment, legacy)
        resp = await client.get(
            f"/api/lti/asset_processors/{processor.id}/launch",
            headers={**login(s.teacher), **JSON},
        )
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["error_code"] == "lti_1_3_required"

    async def test_deleted_tool(self, client, login, seed, course_setup):
        s = course_setup
        gone = await seed.tool(s.course, workflow_state="deleted")
        processor = await seed.asset_processor(s.assignment, gone)
        resp = await client.get(
            f"/api/lti/asset_processors/{processor.id}/launch", headers=login(s.teacher)
        )
        assert resp.status_code == 404


class TestReportReviewLaunch:
    async def test_report_for_student(
        self, client, login, async_session, course_setup, form_fields, installed_storage, count_rows
    ):
        s = course_setup
        submission = await submit(async_session, s.assignment, s.student, attachment_ids=[7])
        await async_session.commit()

        resp = await client.get(
            f"/api/lti/asset_processors/{s.asset_processor.id}/report",
            params={"student_id": str(s.student.id), "asset_id": "7"},
            headers=login(s.teacher),
        )
        assert resp.status_code == 200
        _, params = form_fields(resp.text)
        claims = cached_claims(installed_storage, params)
        assert claims[CLAIM_MESSAGE_TYPE] == "LtiReportReviewRequest"
        assert claims[CLAIM_SUBMISSION] == {"id": str(submission.id), "attempt": 1}
        assert claims[CLAIM_FOR_USER]["user_id"] == s.student.lti_id

        assert await count_rows(
            LtiLaunchLogModel,
            LtiLaunchLogModel.message_type == "LtiReportReviewRequest",
            LtiLaunchLogModel.launch_type == "indirect_link",
        ) == 1

    async def test_report_without_submission(self, client, login, course_setup):
        s = course_setup
        resp = await client.get(
            f"/api/lti/asset_processors/{s.asset_processor.id}/report",
            params={"student_id": str(s.student.id)},
            headers={**login(s.teacher), **JSON},
        )
        assert resp.status_code == 404

    async def test_report_requires_student_id(self, client, login, course_setup):
        s = course_setup
        resp = await client.get(
            f"/api/lti/asset_processors/{s.asset_processor.id}/report",
            headers={**login(s.teacher), **JSON},
        )
        assert resp.status_code == 400


class TestEulaLaunch:
    @pytest.fixture
    def eula_url(self, course_setup):
        s = course_setup
        return f"/api/lti/courses/{s.course.id}/tools/{s.tool.id}/eula"

    async def test_student_launches_eula(
        self, client, login, course_setup, eula_url, form_fields, installed_storage, count_rows
    ):
        s = course_setup
        resp = await client.get(eula_url, headers=login(s.student))
        assert resp.status_code == 200
        _, params = form_fields(resp.text)
        assert params["target_link_uri"] == "https://tool.example.com/eula"
        claims = cached_claims(installed_storage, params)
        assert claims[CLAIM_MESSAGE_TYPE] == "LtiEulaRequest"
        assert claims[CLAIM_TARGET_LINK_URI] == "https://tool.example.com/eula"
        assert claims["sub"] == s.student.lti_id
        assert await count_rows(LtiLaunchLogModel, LtiLaunchLogModel.message_type == "LtiEulaRequest") == 1

    async def test_account_level_tool(self, client, login, seed, course_setup):
        s = course_setup
        account_tool = await seed.tool(s.account, eula_url=None)
        resp = await client.get(
            f"/api/lti/courses/{s.course.id}/tools/{account_tool.id}/eula", headers=login(s.teacher)
        )
        assert resp.status_code == 200

    async def test_outsider_unauthorized(self, client, login, seed, eula_url):
        outsider = await seed.user("Outsider")
        resp = await client.get(eula_url, headers={**login(outsider), **JSON})
        assert resp.status_code == 401

    async def test_not_logged_in(self, client, eula_url):
        resp = await client.get(eula_url)
        assert resp.status_code == 401
        assert resp.headers["content-type"].startswith("text/plain")

    async def test_tool_from_other_course(self, client, login, seed, course_setup):
        s = course_setup
        other = await seed.course(s.account, "History", "HIS1")
        other_tool = await seed.tool(other)
        resp = await client.get(
            f"/api/lti/courses/{s.course.id}/tools/{other_tool.id}/eula", headers=login(s.teacher)
        )
        assert resp.status_code == 404

    async def test_unknown_course(self, client, login, course_setup):
        s = course_setup
        resp = await client.get(
            f"/api/lti/courses/999999/tools/{s.tool.id}/eula", headers=login(s.teacher)
        )
        assert resp.status_code == 404
