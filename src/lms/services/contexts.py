"""
Context helpers shared by the launch flows.

A "context" is the course or account a launch happens in.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from lms.models import AccountModel, ContextExternalToolModel, CourseModel
from lms.services.permissions import account_chain

COURSE = "Course"
ACCOUNT = "Account"


def context_type_name(context: CourseModel | AccountModel) -> str:
    return COURSE if isinstance(context, CourseModel) else ACCOUNT


def context_host(root_account: AccountModel | None, request_host: str | None) -> str | None:
    """Host tools should use to reach this LMS: the root account's domain, else the request's."""
    if root_account is not None and root_account.domain:
        return root_account.domain
    return request_host


async def get_root_account(
    session: AsyncSession, context: CourseModel | AccountModel
) -> AccountModel | None:
    if isinstance(context, CourseModel):
        return await session.get(AccountModel, context.root_account_id)
    account: AccountModel | None = context
    seen: set[int] = set()
    while account is not None and account.parent_account_id is not None and account.id not in seen:
        seen.add(account.id)
        account = await session.get(AccountModel, account.parent_account_id)
    return account


async def tool_available_in(
    session: AsyncSession, tool: ContextExternalToolModel, course: CourseModel
) -> bool:
    """Whether *tool* is installed in *course* or in an account above it."""
    if not tool.active:
        return False
    if tool.context_type == COURSE:
        return tool.context_id == course.id
    chain = await account_chain(session, course.account_id)
    return tool.context_id in {account.id for account in chain}
