"""
Shared test fixtures for the LMS LTI API tests.

Fixtures:
  - rsa_private_key_pem:  RSA signing key generated once per session
  - test_settings:        Settings(auth_enabled=True) with an inline PEM key
  - async_engine:         SQLAlchemy engine → per-test SQLite file
  - async_session:        Per-test DB session used to seed and inspect data
  - session_factory:      async_sessionmaker for get_session_factory() callers
  - fake_redis_client:    fakeredis.FakeRedis instance
  - lti_storage:          RedisLaunchDataStorage backed by fake Redis
  - app:                  FastAPI app with patched DB + Redis + settings
  - client:               httpx.AsyncClient for the test app
  - seed:                 Factory for accounts, users, courses, tools, ...
  - login:                Creates a login session and returns its headers
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import ExitStack
from unittest.mock import patch

import fakeredis
import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from api.lti.storage import RedisLaunchDataStorage
from api.settings import Settings, clear_settings_cache
from lms.models import (
    AccountModel,
    AccountUserModel,
    AssetProcessorModel,
    AssignmentModel,
    Base,
    ContextExternalToolModel,
    CourseModel,
    EnrollmentModel,
    EnrollmentType,
    GroupMembershipModel,
    GroupModel,
    PseudonymModel,
    UserModel,
)
from lms.utils.ids import generate_lti_id

TEST_ISSUER = "https://lms.test"
TEST_SECRET = "test-secret-key"

# Modules that bind ``get_settings`` at import time
_SETTINGS_CONSUMERS = (
    "api.settings.get_settings",
    "api.auth.get_settings",
    "api.database.get_settings",
    "api.errors.get_settings",
    "api.lti.config.get_settings",
    "api.lti.controller.get_settings",
    "api.lti.routes.get_settings",
)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def rsa_private_key_pem() -> str:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode("utf-8")


@pytest.fixture(scope="function")
def test_settings(rsa_private_key_pem: str, tmp_path) -> Settings:
    clear_settings_cache()
    return Settings(
        env="local",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'lms_test.db'}",
        redis_url="redis://fake",
        auth_enabled=True,
        secret_key=TEST_SECRET,
        lti_issuer=TEST_ISSUER,
        lti_private_key=rsa_private_key_pem,
        lti_key_id="test-kid",
    )


@pytest.fixture(scope="function")
def patched_settings(test_settings: Settings):
    """Route every ``get_settings()`` call to ``test_settings``."""
    from api.lti.config import clear_key_cache

    clear_key_cache()
    with ExitStack() as stack:
        for target in _SETTINGS_CONSUMERS:
            stack.enter_context(patch(target, return_value=test_settings))
        yield test_settings
    clear_key_cache()
    clear_settings_cache()


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(scope="function")
async def async_engine(test_settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(test_settings.database_url, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(
    async_engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def async_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def count_rows(session_factory: async_sessionmaker[AsyncSession]):
    """Factory fixture: await count_rows(Model, *where) from a fresh session."""

    async def _count(model, *where) -> int:
        async with session_factory() as session:
            result = await session.execute(select(func.count()).select_from(model).where(*where))
            return result.scalar_one()

    return _count


# ---------------------------------------------------------------------------
# Redis
# ---------------------------------------------------------------------------


@pytest.fixture(scope="function")
def fake_redis_client() -> fakeredis.FakeRedis:
    server = fakeredis.FakeServer()
    return fakeredis.FakeRedis(server=server, decode_responses=True)


@pytest.fixture(scope="function")
def lti_storage(fake_redis_client: fakeredis.FakeRedis) -> RedisLaunchDataStorage:
    return RedisLaunchDataStorage(fake_redis_client)


@pytest.fixture(scope="function")
def installed_storage(lti_storage: RedisLaunchDataStorage):
    """Install ``lti_storage`` as the process-wide launch data storage."""
    import api.lti.storage as storage_mod

    previous = storage_mod._launch_data_storage
    storage_mod._launch_data_storage = lti_storage
    yield lti_storage
    storage_mod._launch_data_storage = previous


# ---------------------------------------------------------------------------
# FastAPI app builder
# ---------------------------------------------------------------------------


def _build_test_app():
    """Build a FastAPI app without the real lifespan."""
    from fastapi import FastAPI

    from api.errors import register_error_handlers
    from api.lti.routes import router as lti_router

    test_app = FastAPI(title="Test")
    register_error_handlers(test_app)
    test_app.include_router(lti_router)

    @test_app.get("/health")
    async def health():
        return {"status": "healthy"}

    return test_app


@pytest_asyncio.fixture(scope="function")
async def app(
    patched_settings: Settings,
    async_engine: AsyncEngine,
    session_factory: async_sessionmaker[AsyncSession],
    installed_storage: RedisLaunchDataStorage,
) -> AsyncGenerator:
    import api.database as db_mod

    # Patch module-level singletons
    db_mod._engine = async_engine
    db_mod._session_factory = session_factory
    yield _build_test_app()
    db_mod._engine = None
    db_mod._session_factory = None


@pytest_asyncio.fixture(scope="function")
async def client(app) -> AsyncGenerator:
    from httpx import ASGITransport, AsyncClient

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------


class Seeder:
    """Creates committed rows through the test session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _save(self, obj):
        self.session.add(obj)
        await self.session.commit()
        return obj

    async def account(self, name: str = "Test University", parent=None, domain: str | None = "test"):
        return await self._save(
            AccountModel(
                name=name,
                parent_account_id=parent.id if parent else None,
                domain=domain if parent is None else None,
                lti_guid=generate_lti_id(),
            )
        )

    async def user(self, name: str = "Ada Lovelace", email: str | None = None, **kwargs):
        return await self._save(
            UserModel(
                name=name,
                email=email or f"{name.split()[0].lower()}@example.com",
                lti_id=generate_lti_id(),
                **kwargs,
            )
        )

    async def pseudonym(self, user, account, unique_id: str = "ada", sis_user_id: str | None = None):
        return await self._save(
            PseudonymModel(
                user_id=user.id, account_id=account.id, unique_id=unique_id, sis_user_id=sis_user_id
            )
        )

    async def admin(self, user, account):
        return await self._save(AccountUserModel(account_id=account.id, user_id=user.id))

    async def course(self, account, name: str = "Biology 101", course_code: str = "BIO101"):
        return await self._save(
            CourseModel(
                account_id=account.id,
                root_account_id=account.id,
                name=name,
                course_code=course_code,
                lti_context_id=generate_lti_id(),
            )
        )

    async def enroll(self, user, course, type: str = EnrollmentType.STUDENT, workflow_state: str = "active"):
        return await self._save(
            EnrollmentModel(course_id=course.id, user_id=user.id, type=type, workflow_state=workflow_state)
        )

    async def assignment(self, course, title: str = "Essay", group_category_id: int | None = None, **kwargs):
        return await self._save(
            AssignmentModel(
                course_id=course.id,
                title=title,
                points_possible=10.0,
                lti_context_id=generate_lti_id(),
                group_category_id=group_category_id,
                **kwargs,
            )
        )

    async def group(self, course, members, group_category_id: int = 1, name: str = "Group 1"):
        group = await self._save(
            GroupModel(course_id=course.id, group_category_id=group_category_id, name=name)
        )
        for member in members:
            self.session.add(GroupMembershipModel(group_id=group.id, user_id=member.id))
        await self.session.commit()
        return group

    async def tool(self, context, **kwargs):
        values = {
            "context_type": "Course" if isinstance(context, CourseModel) else "Account",
            "context_id": context.id,
            "name": "Plagiarism Checker",
            "tool_id": "plagiarism-checker",
            "url": "https://tool.example.com/launch",
            "client_id": "10000000000001",
            "deployment_id": "1:abc",
            "oidc_initiation_url": "https://tool.example.com/login",
            "redirect_uris": ["https://tool.example.com/launch"],
            "eula_url": "https://tool.example.com/eula",
            "custom_fields": {},
        }
        values.update(kwargs)
        return await self._save(ContextExternalToolModel(**values))

    async def asset_processor(self, assignment, tool, **kwargs):
        values = {
            "assignment_id": assignment.id,
            "context_external_tool_id": tool.id,
            "url": "https://tool.example.com/asset_processor",
            "title": "Originality report",
            "custom": {},
        }
        values.update(kwargs)
        return await self._save(AssetProcessorModel(**values))


@pytest_asyncio.fixture(scope="function")
async def seed(async_session: AsyncSession) -> Seeder:
    return Seeder(async_session)


@pytest.fixture
def login(lti_storage: RedisLaunchDataStorage):
    """Factory fixture: login(user) → request headers carrying a session id."""
    from api.auth import SESSION_HEADER, session_key
    from lms.utils.ids import generate_session_id

    def _login(user, pseudonym=None) -> dict[str, str]:
        session_id = generate_session_id()
        lti_storage.set_value(
            session_key(session_id),
            {"user_id": user.id, "pseudonym_id": pseudonym.id if pseudonym else None},
            exp=3600,
        )
        return {SESSION_HEADER: session_id}

    return _login


@pytest_asyncio.fixture(scope="function")
async def course_setup(seed: Seeder):
    """A course with a teacher, a student, an assignment, a 1.3 tool and an asset processor."""

    class Setup:
        pass

    s = Setup()
    s.account = await seed.account()
    s.course = await seed.course(s.account)
    s.teacher = await seed.user("Grace Hopper")
    s.student = await seed.user("Ada Lovelace")
    await seed.enroll(s.teacher, s.course, EnrollmentType.TEACHER)
    await seed.enroll(s.student, s.course, EnrollmentType.STUDENT)
    s.assignment = await seed.assignment(s.course)
    s.tool = await seed.tool(s.course)
    s.asset_processor = await seed.asset_processor(s.assignment, s.tool)
    return s


# ---------------------------------------------------------------------------
# HTML helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def form_fields():
    """Parse an auto-submitting launch page into (action, {name: value})."""
    import html
    import re

    input_re = re.compile(r'<input type="hidden" name="([^"]*)" value="([^"]*)">')
    action_re = re.compile(r'<form id="tool_form" action="([^"]*)"')

    def _parse(page: str) -> tuple[str, dict[str, str]]:
        action = action_re.search(page)
        fields = {html.unescape(n): html.unescape(v) for n, v in input_re.findall(page)}
        return (html.unescape(action.group(1)) if action else ""), fields

    return _parse
