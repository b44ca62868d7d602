"""
LTI variable substitution.

Tool custom fields may hold placeholders such as ``$Lms.user.id`` or
``$Person.name.full``.  ``VariableExpander`` resolves them against the
launch's account, context, user, tool and launch state.  Placeholders that
are unknown, or whose required state is absent (no user for a
``$Person.*`` variable, no assignment for ``$Lms.assignment.*``), are
left as the literal ``$Name`` text, as LTI platforms do.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from lms.models import AccountModel, CourseModel
from lms.services.contexts import context_host
from lms.services.permissions import membership_roles

logger = logging.getLogger(__name__)

Guard = Callable[["VariableExpander"], bool]
Resolver = Callable[["VariableExpander"], Any]


@dataclass(frozen=True)
class Expansion:
    name: str
    resolver: Resolver
    guards: tuple[Guard, ...] = ()

    def applies(self, expander: VariableExpander) -> bool:
        return all(guard(expander) for guard in self.guards)


EXPANSIONS: dict[str, Expansion] = {}


def register_expansion(name: str, *guards: Guard) -> Callable[[Resolver], Resolver]:
    """Register a resolver for ``$<name>``; it only applies when every guard passes."""

    def decorator(resolver: Resolver) -> Resolver:
        EXPANSIONS[name] = Expansion(name, resolver, tuple(guards))
        return resolver

    return decorator


# ── Guards ──────────────────────────────────────────────────────────


def _user(e: VariableExpander) -> bool:
    return e.current_user is not None


def _pseudonym(e: VariableExpander) -> bool:
    return e.current_pseudonym is not None


def _course(e: VariableExpander) -> bool:
    return isinstance(e.context, CourseModel)


def _assignment(e: VariableExpander) -> bool:
    return e.assignment is not None


def _tool(e: VariableExpander) -> bool:
    return e.tool is not None


def _launch(e: VariableExpander) -> bool:
    return e.launch is not None


def _root_account(e: VariableExpander) -> bool:
    return e.root_account is not None


class VariableExpander:
    """Resolves ``$Variable`` placeholders for one launch."""

    def __init__(
        self,
        root_account: AccountModel | None,
        context: CourseModel | AccountModel,
        controller: Any,
        opts: Mapping[str, Any] | None = None,
    ):
        self.root_account = root_account
        self.context = context
        self.controller = controller
        self.opts = dict(opts or {})
        self._roles: list[str] | None = None

    # Commonly used opts
    @property
    def current_user(self):
        return self.opts.get("current_user")

    @property
    def current_pseudonym(self):
        return self.opts.get("current_pseudonym")

    @property
    def tool(self):
        return self.opts.get("tool")

    @property
    def launch(self):
        return self.opts.get("launch")

    @property
    def assignment(self):
        return self.opts.get("assignment")

    async def membership_roles(self) -> list[str]:
        """Enrollment types of the current user in the course context."""
        if self._roles is None:
            if isinstance(self.context, CourseModel):
                self._roles = await membership_roles(
                    self.controller.db, self.context, self.current_user
                )
            else:
                self._roles = []
        return self._roles

    async def expand(self, value: Any) -> Any:
        """Resolve *value* if it is a known, applicable ``$Variable``; else return it unchanged."""
        if not isinstance(value, str) or not value.startswith("$"):
            return value
        expansion = EXPANSIONS.get(value[1:])
        if expansion is None or not expansion.applies(self):
            return value
        resolved = expansion.resolver(self)
        if inspect.isawaitable(resolved):
            resolved = await resolved
        if resolved is None:
            return value
        return resolved

    async def expand_variables(self, variables: Mapping[str, Any]) -> dict[str, Any]:
        """Resolve every value of a custom-field mapping."""
        expanded = {}
        for key, value in variables.items():
            expanded[key] = await self.expand(value)
        unresolved = [k for k, v in expanded.items() if isinstance(v, str) and v.startswith("$")]
        if unresolved:
            logger.debug("Unresolved LTI variables for %s", unresolved)
        return expanded


# ── Registered expansions ───────────────────────────────────────────


@register_expansion("Lms.api.domain")
def _api_domain(e: VariableExpander):
    return context_host(e.root_account, getattr(e.controller, "request_host", None))


@register_expansion("Lms.root_account.id", _root_account)
def _root_account_id(e: VariableExpander):
    return e.root_account.id


@register_expansion("Lms.account.id")
def _account_id(e: VariableExpander):
    return e.context.account_id if isinstance(e.context, CourseModel) else e.context.id


@register_expansion("Context.id")
def _context_id(e: VariableExpander):
    return e.context.lti_context_id if isinstance(e.context, CourseModel) else e.context.lti_guid


@register_expansion("Context.title")
def _context_title(e: VariableExpander):
    return e.context.name


@register_expansion("Lms.course.id", _course)
def _course_id(e: VariableExpander):
    return e.context.id


@register_expansion("Lms.course.name", _course)
def _course_name(e: VariableExpander):
    return e.context.name


@register_expansion("Lms.course.courseCode", _course)
def _course_code(e: VariableExpander):
    return e.context.course_code


@register_expansion("Lms.membership.roles", _user, _course)
async def _membership_roles(e: VariableExpander):
    return ",".join(await e.membership_roles())


@register_expansion("Lms.user.id", _user)
@register_expansion("User.id", _user)
def _user_id(e: VariableExpander):
    return e.current_user.id


@register_expansion("Person.name.full", _user)
def _person_full_name(e: VariableExpander):
    return e.current_user.name


@register_expansion("Person.name.given", _user)
def _person_given_name(e: VariableExpander):
    return e.current_user.given_name


@register_expansion("Person.name.family", _user)
def _person_family_name(e: VariableExpander):
    return e.current_user.family_name


@register_expansion("Person.email.primary", _user)
def _person_email(e: VariableExpander):
    return e.current_user.email


@register_expansion("Lms.user.loginId", _pseudonym)
@register_expansion("User.username", _pseudonym)
def _login_id(e: VariableExpander):
    return e.current_pseudonym.unique_id


@register_expansion("Lms.user.sisSourceId", _pseudonym)
@register_expansion("Person.sourcedId", _pseudonym)
def _sis_source_id(e: VariableExpander):
    return e.current_pseudonym.sis_user_id


@register_expansion("Lms.assignment.id", _assignment)
def _assignment_id(e: VariableExpander):
    return e.assignment.id


@register_expansion("Lms.assignment.title", _assignment)
def _assignment_title(e: VariableExpander):
    return e.assignment.title


@register_expansion("Lms.assignment.pointsPossible", _assignment)
def _assignment_points(e: VariableExpander):
    return e.assignment.points_possible


@register_expansion("Lms.assignment.lti.id", _assignment)
def _assignment_lti_id(e: VariableExpander):
    return e.assignment.lti_context_id


@register_expansion("Lms.externalTool.url", _tool)
def _tool_url(e: VariableExpander):
    return e.tool.url


@register_expansion("ResourceLink.title", _launch)
def _resource_link_title(e: VariableExpander):
    return e.launch.link_text
