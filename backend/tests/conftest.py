"""
Pytest configuration and fixtures.

WHY: Fixtures provide reusable test setup/teardown logic, reducing
duplication and ensuring consistent test environments.
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from practice_api.core.auth import PemKeyStrategy, TokenVerifier
from practice_api.core.deps import get_token_verifier
from practice_api.db.session import get_db
from practice_api.main import app
from practice_api.models.base import Base
from tests.factories import TEST_AUTHORIZED_PARTY, KeyPair, TokenFactory, generate_key_pair


# Test database URL
# WHY: SQLite in memory removes the PostgreSQL dependency from the test run.
# StaticPool keeps every session on the one connection that holds the data.
TEST_ASYNC_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """
    Create a test database engine.

    WHY: Function scope ensures each test gets a fresh database state.
    """
    engine = create_async_engine(
        TEST_ASYNC_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """
    Create a test database session, configured like the application's.

    Yields:
        AsyncSession: Database session for the test
    """
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture(scope="session")
def signing_keys() -> KeyPair:
    """
    RSA key pair the identity provider signs test tokens with.

    Session scope: key generation is slow.
    """
    return generate_key_pair()


@pytest.fixture(scope="session")
def other_keys() -> KeyPair:
    """A second key pair, unknown to the verifier."""
    return generate_key_pair()


@pytest.fixture
def tokens(signing_keys: KeyPair) -> TokenFactory:
    return TokenFactory(signing_keys)


@pytest.fixture
def verifier(signing_keys: KeyPair) -> TokenVerifier:
    """Verifier trusting ``signing_keys`` through the PEM strategy."""
    return TokenVerifier(
        strategies=[PemKeyStrategy(signing_keys.public_pem)],
        authorized_parties=[TEST_AUTHORIZED_PARTY],
    )


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession, verifier: TokenVerifier
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create a test HTTP client.

    WHY: AsyncClient allows testing FastAPI endpoints without running
    a real server.

    Yields:
        AsyncClient: HTTP client for making test requests
    """

    async def override_get_db():
        """Override database dependency with test session."""
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_token_verifier] = lambda: verifier

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
