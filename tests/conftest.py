"""
Shared fixtures: a file-backed SQLite database per test, seed helpers, and an
HTTP client wired to it.
"""
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from groupguard.core.database.engine import get_db, init_db
from groupguard.core.rate_limit import RateLimiter, get_rate_limiter
from groupguard.features.activity.recorder import ActivityRecorder, get_activity_recorder
from groupguard.features.groups.models import Group, GroupMembership, GroupRole
from groupguard.features.users.auth import issue_token
from groupguard.features.users.models import GlobalRole, User


# =============================================================================
# Database
# =============================================================================

@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    await init_db(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def recorder(session_factory):
    return ActivityRecorder(session_factory)


class UnavailableStore:
    """Session factory standing in for an activity store that is down."""

    def __call__(self):
        raise OperationalError("INSERT INTO activity_logs", {}, ConnectionRefusedError("store unavailable"))


@pytest.fixture
def broken_recorder():
    return ActivityRecorder(UnavailableStore())


# =============================================================================
# Seed helpers
# =============================================================================

@pytest.fixture
def make_user(db):
    async def factory(email: str, global_role: GlobalRole = GlobalRole.USER, name: str | None = None) -> User:
        user = User(email=email, name=name or email.split("@")[0], global_role=global_role)
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    return factory


@pytest.fixture
def make_group(db):
    async def factory(name: str, members: list[tuple[User, GroupRole]] = ()) -> Group:
        owner = next((user for user, role in members if role == GroupRole.OWNER), None)
        group = Group(name=name, created_by_id=owner.id if owner else None)
        db.add(group)
        await db.flush()
        for user, role in members:
            db.add(GroupMembership(user_id=user.id, group_id=group.id, role=role))
        await db.commit()
        return group

    return factory


@pytest.fixture
def auth():
    def headers(user: User) -> dict:
        return {"Authorization": f"Bearer {issue_token(user.id)}"}

    return headers


# =============================================================================
# HTTP client
# =============================================================================

@pytest.fixture
def activity_recorder(recorder):
    """Recorder the app will use; tests may override this fixture."""
    return recorder


@pytest.fixture
async def client(session_factory, activity_recorder):
    from groupguard.main import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    limiter = RateLimiter.from_uri("memory://")
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_activity_recorder] = lambda: activity_recorder
    app.dependency_overrides[get_rate_limiter] = lambda: limiter

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
