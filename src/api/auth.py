"""
Request identity for FastAPI endpoints.

Resolves the current user from a login session id, sent either as the
``lms_session`` cookie or the ``X-Session-Id`` header and looked up in
Redis.  When ``auth_enabled`` is ``False`` (local / dev), falls back to
``dev_user_id`` so the API remains usable without logging in.

Usage::

    from api.auth import RequestContext, get_request_context

    @router.get("/example")
    async def example(ctx: RequestContext = Depends(get_request_context)):
        print(ctx.current_user, ctx.session_id)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.database import get_db
from api.settings import get_settings
from lms.models import AccountModel, PseudonymModel, UserModel

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "lms_session"
SESSION_HEADER = "x-session-id"

_MOBILE_USER_AGENTS = ("lms-android", "lms-ios")


@dataclass
class RequestContext:
    """Resolved identity and request facts for the current request."""

    current_user: UserModel | None = None
    current_pseudonym: PseudonymModel | None = None
    domain_root_account: AccountModel | None = None
    session_id: str | None = None
    host: str | None = None
    user_agent: str = ""
    source: str = "session"  # "session" | "dev" | "anonymous"

    @property
    def in_lti_mobile_webview(self) -> bool:
        agent = self.user_agent.lower()
        return any(marker in agent for marker in _MOBILE_USER_AGENTS)


def session_key(session_id: str) -> str:
    return f"session:{session_id}"


async def _domain_root_account(db: AsyncSession, host: str | None) -> AccountModel | None:
    if host:
        result = await db.execute(
            select(AccountModel).where(
                AccountModel.domain == host,
                AccountModel.parent_account_id.is_(None),
            )
        )
        account = result.scalars().first()
        if account is not None:
            return account
    result = await db.execute(
        select(AccountModel)
        .where(AccountModel.parent_account_id.is_(None))
        .order_by(AccountModel.id)
    )
    return result.scalars().first()


async def _load_user(
    db: AsyncSession, user_id: int | None, pseudonym_id: int | None = None
) -> tuple[UserModel | None, PseudonymModel | None]:
    if user_id is None:
        return None, None
    user = await db.get(UserModel, user_id)
    if user is None:
        return None, None
    pseudonym = None
    if pseudonym_id is not None:
        pseudonym = await db.get(PseudonymModel, pseudonym_id)
    if pseudonym is None:
        result = await db.execute(
            select(PseudonymModel)
            .where(PseudonymModel.user_id == user.id, PseudonymModel.workflow_state == "active")
            .order_by(PseudonymModel.id)
        )
        pseudonym = result.scalars().first()
    return user, pseudonym


async def get_request_context(
    request: Request, db: AsyncSession = Depends(get_db)
) -> RequestContext:
    """FastAPI dependency: resolve the current user from the login session."""
    settings = get_settings()
    host = request.url.hostname
    ctx = RequestContext(
        domain_root_account=await _domain_root_account(db, host),
        host=host,
        user_agent=request.headers.get("user-agent", ""),
        source="anonymous",
    )

    session_id = request.cookies.get(SESSION_COOKIE_NAME) or request.headers.get(SESSION_HEADER)
    if session_id:
        ctx.session_id = session_id
        try:
            from api.lti.storage import get_launch_data_storage

            info = get_launch_data_storage().get_value(session_key(session_id))
        except RuntimeError:
            # Storage not initialized (no Redis)
            info = None
        if info:
            ctx.current_user, ctx.current_pseudonym = await _load_user(
                db, info.get("user_id"), info.get("pseudonym_id")
            )
            if ctx.current_user is not None:
                ctx.source = "session"
                return ctx
        logger.info("Ignoring unknown or expired session %s", session_id)

    if not settings.auth_enabled and settings.dev_user_id is not None:
        ctx.current_user, ctx.current_pseudonym = await _load_user(db, settings.dev_user_id)
        if ctx.current_user is not None:
            ctx.source = "dev"

    return ctx
