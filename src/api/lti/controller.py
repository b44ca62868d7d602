"""
Per-request controller objects.

Route functions build a controller around the request, its database
session and the resolved ``RequestContext``, then call ``process`` with the
action to run.  ``before_actions`` run first, in order; any of them can stop
the request by raising an ``LmsError``.

Values derived from the request (the asset processor, the student, the
submission) are ``memoized`` so each is computed at most once per request.
"""

from __future__ import annotations

import functools
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.auth import RequestContext
from api.settings import Settings, get_settings
from lms.errors import ParameterMissing, Unauthorized

T = TypeVar("T")


def memoized(method: Callable[[Any], Awaitable[T]]) -> Callable[[Any], Awaitable[T]]:
    """Cache an async, argument-less method's result on the instance (``None`` included)."""
    attr = f"_memo_{method.__name__}"

    @functools.wraps(method)
    async def wrapper(self) -> T:
        if attr not in self.__dict__:
            self.__dict__[attr] = await method(self)
        return self.__dict__[attr]

    return wrapper


class Controller:
    """Base class for request handlers."""

    before_actions: tuple[str, ...] = ()

    def __init__(
        self,
        request: Request,
        db: AsyncSession,
        request_context: RequestContext,
        params: dict[str, Any] | None = None,
        settings: Settings | None = None,
    ):
        self.request = request
        self.db = db
        self.request_context = request_context
        self.params = {**request.query_params, **(params or {}), **request.path_params}
        self.settings = settings or get_settings()

    @property
    def current_user(self):
        return self.request_context.current_user

    @property
    def current_pseudonym(self):
        return self.request_context.current_pseudonym

    @property
    def domain_root_account(self):
        return self.request_context.domain_root_account

    @property
    def session_id(self) -> str | None:
        return self.request_context.session_id

    @property
    def request_host(self) -> str | None:
        return self.request_context.host

    def require_param(self, name: str) -> Any:
        value = self.params.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ParameterMissing(name)
        return value

    async def require_user(self) -> None:
        if self.current_user is None:
            raise Unauthorized("A logged-in user is required")

    async def process(self, action: str) -> Any:
        for name in self.before_actions:
            await getattr(self, name)()
        return await getattr(self, action)()
