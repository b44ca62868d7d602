"""
Permission checks for courses and accounts.

Rights are derived from active enrollments in a course and from admin roles
on the course's account chain.  Only the rights the LTI endpoints need are
modelled.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.models import (
    AccountModel,
    AccountUserModel,
    CourseModel,
    EnrollmentModel,
    EnrollmentType,
    UserModel,
)

READ = "read"
MANAGE_GRADES = "manage_grades"
VIEW_ALL_GRADES = "view_all_grades"
MANAGE_ASSIGNMENTS = "manage_assignments"

# Rights granted by each enrollment type in a course
ENROLLMENT_RIGHTS: dict[str, frozenset[str]] = {
    EnrollmentType.TEACHER: frozenset({READ, MANAGE_GRADES, VIEW_ALL_GRADES, MANAGE_ASSIGNMENTS}),
    EnrollmentType.TA: frozenset({READ, MANAGE_GRADES, VIEW_ALL_GRADES}),
    EnrollmentType.DESIGNER: frozenset({READ, MANAGE_ASSIGNMENTS}),
    EnrollmentType.STUDENT: frozenset({READ}),
    EnrollmentType.OBSERVER: frozenset({READ}),
}

ADMIN_RIGHTS = frozenset({READ, MANAGE_GRADES, VIEW_ALL_GRADES, MANAGE_ASSIGNMENTS})


async def account_chain(session: AsyncSession, account_id: int) -> list[AccountModel]:
    """Return the account and its ancestors, nearest first."""
    chain: list[AccountModel] = []
    seen: set[int] = set()
    current: int | None = account_id
    while current is not None and current not in seen:
        seen.add(current)
        account = await session.get(AccountModel, current)
        if account is None:
            break
        chain.append(account)
        current = account.parent_account_id
    return chain


async def _is_account_admin(session: AsyncSession, user_id: int, account_id: int) -> bool:
    chain_ids = [a.id for a in await account_chain(session, account_id)]
    if not chain_ids:
        return False
    result = await session.execute(
        select(AccountUserModel.id).where(
            AccountUserModel.user_id == user_id,
            AccountUserModel.account_id.in_(chain_ids),
            AccountUserModel.workflow_state == "active",
        )
    )
    return result.first() is not None


async def rights_for(
    session: AsyncSession,
    context: CourseModel | AccountModel,
    user: UserModel | None,
) -> frozenset[str]:
    """All rights *user* holds on *context*."""
    if user is None:
        return frozenset()

    if isinstance(context, AccountModel):
        return ADMIN_RIGHTS if await _is_account_admin(session, user.id, context.id) else frozenset()

    if await _is_account_admin(session, user.id, context.account_id):
        return ADMIN_RIGHTS

    result = await session.execute(
        select(EnrollmentModel.type).where(
            EnrollmentModel.course_id == context.id,
            EnrollmentModel.user_id == user.id,
            EnrollmentModel.workflow_state == "active",
        )
    )
    rights: set[str] = set()
    for enrollment_type in result.scalars().all():
        rights |= ENROLLMENT_RIGHTS.get(enrollment_type, frozenset())
    return frozenset(rights)


async def grants_right(
    session: AsyncSession,
    context: CourseModel | AccountModel,
    user: UserModel | None,
    right: str,
) -> bool:
    return right in await rights_for(session, context, user)


async def grants_any_right(
    session: AsyncSession,
    context: CourseModel | AccountModel,
    user: UserModel | None,
    *rights: str,
) -> bool:
    granted = await rights_for(session, context, user)
    return any(right in granted for right in rights)


async def membership_roles(
    session: AsyncSession, course: CourseModel, user: UserModel | None
) -> list[str]:
    """Active enrollment types of *user* in *course*, in a stable order."""
    if user is None:
        return []
    result = await session.execute(
        select(EnrollmentModel.type)
        .where(
            EnrollmentModel.course_id == course.id,
            EnrollmentModel.user_id == user.id,
            EnrollmentModel.workflow_state == "active",
        )
        .order_by(EnrollmentModel.type)
    )
    return list(dict.fromkeys(result.scalars().all()))
