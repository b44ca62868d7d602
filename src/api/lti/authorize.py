"""
OIDC authorization leg of an LTI 1.3 launch.

After the browser posts the login-initiation parameters to the tool, the
tool redirects it back here with its own ``nonce``, ``state`` and
``redirect_uri`` plus the ``lti_message_hint`` we issued.  Once the request
checks out against the cached message, the message is consumed, bound to
the nonce, signed and posted to the tool.
"""

from __future__ import annotations

import logging
import time

import jwt
from starlette.responses import HTMLResponse

from api.lti.config import get_launch_config
from api.lti.controller import Controller
from api.lti.render import auto_submit_form
from api.lti.storage import get_launch_data_storage
from lms.errors import InvalidAuthorizationRequest
from lms.models import ContextExternalToolModel
from lms.services.lti_advantage import messages
from lms.services.lti_advantage.adapter import CACHE_KEY_PREFIX
from lms.services.lti_advantage.keys import decode_message_hint

logger = logging.getLogger(__name__)

REQUIRED_PARAMS = ("client_id", "login_hint", "lti_message_hint", "nonce", "redirect_uri", "state")


class AuthorizationController(Controller):
    async def authorize_redirect(self) -> HTMLResponse:
        for name in REQUIRED_PARAMS:
            if not self.params.get(name):
                raise InvalidAuthorizationRequest("invalid_request", f"Missing {name!r} parameter")
        if self.params.get("scope") != "openid":
            raise InvalidAuthorizationRequest("invalid_scope")
        if self.params.get("response_type") != "id_token":
            raise InvalidAuthorizationRequest("unsupported_response_type")

        config = get_launch_config()
        try:
            hint = decode_message_hint(self.params["lti_message_hint"], config.message_hint_secret)
        except jwt.PyJWTError as exc:
            logger.info("Rejected lti_message_hint: %s", exc)
            raise InvalidAuthorizationRequest("launch_no_longer_valid") from exc

        storage = get_launch_data_storage()
        cache_key = f"{CACHE_KEY_PREFIX}{hint.get('verifier')}"
        cached = storage.get_value(cache_key)
        if not cached:
            raise InvalidAuthorizationRequest("launch_no_longer_valid")

        if cached.get("client_id") != self.params["client_id"]:
            raise InvalidAuthorizationRequest("invalid_request", "client_id does not match the launch")

        claims = cached["claims"]
        self.check_login(claims)

        tool = await self.db.get(ContextExternalToolModel, cached.get("tool_id"))
        if tool is None or not tool.active:
            raise InvalidAuthorizationRequest("invalid_request", "Tool is no longer available")
        redirect_uri = self.params["redirect_uri"]
        allowed = set(tool.redirect_uris or []) or {tool.url, claims.get(messages.CLAIM_TARGET_LINK_URI)}
        if redirect_uri not in allowed:
            raise InvalidAuthorizationRequest("invalid_redirect_uri")

        # A concurrent request may have consumed the message since it was read.
        if storage.pop_value(cache_key) is None:
            raise InvalidAuthorizationRequest("launch_no_longer_valid")

        now = int(time.time())
        claims.update(
            {"nonce": self.params["nonce"], "iat": now, "exp": now + config.id_token_ttl}
        )
        id_token = config.key_set.sign(claims)
        logger.info("Authorized launch for tool=%s client_id=%s", tool.id, tool.client_id)

        html = auto_submit_form(
            redirect_uri, {"id_token": id_token, "state": self.params["state"]}
        )
        return HTMLResponse(content=html, headers={"Cache-Control": "no-store"})

    def check_login(self, claims: dict) -> None:
        """The login hint and the logged-in user must both match the launch's subject."""
        subject = claims.get("sub")
        expected_hint = subject or "anonymous"
        if self.params["login_hint"] != expected_hint:
            raise InvalidAuthorizationRequest("login_required")
        if subject is not None and (
            self.current_user is None or self.current_user.lti_id != subject
        ):
            raise InvalidAuthorizationRequest("login_required")
