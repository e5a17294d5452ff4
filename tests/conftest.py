"""
Test infrastructure for the blog post service.

Strategy
--------
- SQLite in-memory via aiosqlite eliminates the need for a running Postgres
  instance in CI, keeping the suite fast and self-contained.
- StaticPool forces all async tasks to share the same in-memory database
  connection, which is required because SQLite in-memory databases are
  connection-scoped; a new connection would see an empty database.
- All tables are created fresh before each test and dropped after, giving
  each test a clean isolated state without needing transactions or truncation.
- SQLite supports ``INSERT ... ON CONFLICT``, so the reaction upsert runs
  the same code path it does on PostgreSQL.
"""
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from blog.database import Base
from blog.models import Role
from blog.schemas import CategoryCreate, UserCreate
from blog.services import category_service, user_service

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """Yield a live AsyncSession for calling service functions directly."""
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def author(db_session: AsyncSession):
    return await user_service.create_user(
        db_session, UserCreate(username="author", email="author@example.com")
    )


@pytest_asyncio.fixture
async def reader(db_session: AsyncSession):
    return await user_service.create_user(
        db_session, UserCreate(username="reader", email="reader@example.com")
    )


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession):
    return await user_service.create_user(
        db_session, UserCreate(username="admin", email="admin@example.com", role=Role.ADMIN)
    )


@pytest_asyncio.fixture
async def category(db_session: AsyncSession) -> dict:
    return await category_service.create_category(db_session, CategoryCreate(name="python"))


@pytest_asyncio.fixture
async def session_factory() -> async_sessionmaker:
    """The test session factory, for code that opens its own sessions."""
    return async_session_test
