"""
LTI Advantage launch adapter.

Builds the id_token for a launch, caches it for the OIDC authorization
step, and returns the login-initiation parameters the browser posts to the
tool.  The id_token itself only leaves the LMS when the tool comes back to
the authorize endpoint with the ``lti_message_hint`` issued here.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

from lms.models import AccountModel, ContextExternalToolModel, CourseModel, UserModel
from lms.services.contexts import context_type_name
from lms.services.variable_expander import VariableExpander
from lms.utils.ids import generate_verifier

from . import messages
from .keys import KeySet, sign_message_hint

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "launch_message:"


@dataclass(frozen=True)
class LaunchConfig:
    """Platform-wide values every launch needs."""

    issuer: str
    key_set: KeySet
    message_hint_secret: str
    message_ttl: int = 600
    id_token_ttl: int = 3600
    platform_name: str = "LMS"
    platform_version: str = "cloud"
    product_family_code: str = "lms"
    locale: str = "en"


class LtiAdvantageAdapter:
    """Produces LTI 1.3 launch payloads for one tool, user and context."""

    def __init__(
        self,
        tool: ContextExternalToolModel,
        user: UserModel | None,
        context: CourseModel | AccountModel,
        return_url: str | None,
        expander: VariableExpander,
        include_storage_target: bool,
        opts: dict[str, Any],
        storage,
        config: LaunchConfig,
    ):
        self.tool = tool
        self.user = user
        self.context = context
        self.return_url = return_url
        self.expander = expander
        self.include_storage_target = include_storage_target
        self.opts = opts
        self.storage = storage
        self.config = config

    @property
    def launch_url(self) -> str | None:
        """Where the browser is sent first: the tool's OIDC login initiation URL."""
        return self.tool.oidc_initiation_url or self.tool.url

    # ── Message types ────────────────────────────────────────────────

    async def generate_post_payload_for_asset_processor_settings(self) -> dict[str, Any]:
        asset_processor = self.opts["asset_processor"]
        claims = {messages.CLAIM_ACTIVITY: self._activity_claim()}
        return await self._generate_lti_params(
            messages.MessageType.ASSET_PROCESSOR_SETTINGS,
            target_link_uri=asset_processor.url or self.tool.url,
            extra_claims=claims,
            custom=asset_processor.custom,
        )

    async def generate_post_payload_for_report_review(self) -> dict[str, Any]:
        asset_processor = self.opts["asset_processor"]
        submission = self.opts["submission"]
        student = self.opts.get("student")
        claims: dict[str, Any] = {
            messages.CLAIM_ACTIVITY: self._activity_claim(),
            messages.CLAIM_SUBMISSION: {
                "id": str(submission.id),
                "attempt": submission.attempt,
            },
        }
        if student is not None:
            claims[messages.CLAIM_FOR_USER] = {
                "user_id": student.lti_id,
                "person_sourcedid": None,
                "name": student.name,
                "given_name": student.given_name,
                "family_name": student.family_name,
                "email": student.email,
                "roles": [messages.ROLE_LEARNER],
            }
        asset_id = self.opts.get("asset_id")
        if asset_id is not None:
            claims[messages.CLAIM_ASSET] = {"id": str(asset_id)}
        return await self._generate_lti_params(
            messages.MessageType.REPORT_REVIEW,
            target_link_uri=asset_processor.url or self.tool.url,
            extra_claims=claims,
            custom=asset_processor.custom,
        )

    async def generate_post_payload_for_eula(self) -> dict[str, Any]:
        return await self._generate_lti_params(
            messages.MessageType.EULA,
            target_link_uri=self.tool.eula_url or self.tool.url,
            extra_claims={},
        )

    # ── Claims ───────────────────────────────────────────────────────

    def _activity_claim(self) -> dict[str, Any] | None:
        assignment = self.opts.get("assignment") or self.expander.assignment
        if assignment is None:
            return None
        return {"id": assignment.lti_context_id, "title": assignment.title}

    def _context_claim(self) -> dict[str, Any]:
        if isinstance(self.context, CourseModel):
            return {
                "id": self.context.lti_context_id,
                "label": self.context.course_code,
                "title": self.context.name,
                "type": [messages.CONTEXT_TYPE_COURSE],
            }
        return {"id": self.context.lti_guid, "title": self.context.name, "type": []}

    async def _base_claims(
        self, message_type: messages.MessageType, target_link_uri: str | None
    ) -> dict[str, Any]:
        now = int(time.time())
        root_account = self.expander.root_account
        claims: dict[str, Any] = {
            "iss": self.config.issuer,
            "aud": self.tool.client_id,
            "azp": self.tool.client_id,
            "iat": now,
            "exp": now + self.config.id_token_ttl,
            messages.CLAIM_MESSAGE_TYPE: message_type.value,
            messages.CLAIM_VERSION: messages.LTI_VERSION,
            messages.CLAIM_DEPLOYMENT_ID: self.tool.deployment_id,
            messages.CLAIM_TARGET_LINK_URI: target_link_uri,
            messages.CLAIM_ROLES: messages.lti_roles(
                await self.expander.membership_roles(), has_user=self.user is not None
            ),
            messages.CLAIM_CONTEXT: self._context_claim(),
            messages.CLAIM_TOOL_PLATFORM: {
                "guid": root_account.lti_guid if root_account else None,
                "name": root_account.name if root_account else self.config.platform_name,
                "version": self.config.platform_version,
                "product_family_code": self.config.product_family_code,
            },
            messages.CLAIM_LAUNCH_PRESENTATION: {
                "document_target": "iframe",
                "return_url": self.return_url,
                "locale": (self.user.locale if self.user else None) or self.config.locale,
            },
        }
        if self.user is not None:
            claims.update(
                {
                    "sub": self.user.lti_id,
                    "name": self.user.name,
                    "given_name": self.user.given_name,
                    "family_name": self.user.family_name,
                    "email": self.user.email,
                }
            )
        return claims

    async def _generate_lti_params(
        self,
        message_type: messages.MessageType,
        target_link_uri: str | None,
        extra_claims: dict[str, Any],
        custom: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        target_link_uri = target_link_uri or self.launch_url
        claims = await self._base_claims(message_type, target_link_uri)
        claims.update({k: v for k, v in extra_claims.items() if v is not None})

        custom_fields = {**(self.tool.custom_fields or {}), **(custom or {})}
        if custom_fields:
            claims[messages.CLAIM_CUSTOM] = await self.expander.expand_variables(custom_fields)

        verifier = generate_verifier()
        self.storage.set_value(
            f"{CACHE_KEY_PREFIX}{verifier}",
            {"claims": claims, "tool_id": self.tool.id, "client_id": self.tool.client_id},
            exp=self.config.message_ttl,
        )
        message_hint = sign_message_hint(
            {
                "verifier": verifier,
                "domain": self.opts.get("domain"),
                "context_type": context_type_name(self.context),
                "context_id": self.context.id,
            },
            self.config.message_hint_secret,
            self.config.message_ttl,
        )
        logger.debug(
            "Cached %s message for tool=%s verifier=%s", message_type.value, self.tool.id, verifier
        )

        params = {
            "iss": self.config.issuer,
            "login_hint": self.user.lti_id if self.user else "anonymous",
            "client_id": self.tool.client_id,
            "deployment_id": self.tool.deployment_id,
            "target_link_uri": target_link_uri,
            "lti_message_hint": message_hint,
        }
        if self.include_storage_target:
            params["lti_storage_target"] = "_parent"
        return params
