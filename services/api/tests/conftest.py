"""Pytest configuration and shared fixtures.

Unit tests run against in-memory SQLite (fast).
Integration tests use real PostgreSQL via testcontainers (slow, marked).
"""

import os

import pytest
from sqlalchemy import StaticPool, create_engine

from services.api.src.helpline.db.models import metadata


def pytest_configure(config):
    """Configure test environment before collection."""
    os.environ.setdefault("CREATE_TABLES", "false")
    os.environ.setdefault("PIPELINE_API_KEY", "")
    os.environ.setdefault("OPENAI_API_KEY", "")
    os.environ.setdefault("JWT_SECRET", "test-secret")
    os.environ.setdefault("PUBLIC_BASE_URL", "http://testserver")

    # Register integration marker
    config.addinivalue_line(
        "markers", "integration: tests that require real PostgreSQL (slow)"
    )


# =============================================================================
# UNIT TEST FIXTURES (fast, in-memory)
# =============================================================================

@pytest.fixture
def engine():
    """Fresh in-memory SQLite engine with all tables."""
    eng = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def feed():
    """Isolated change feed so listeners from other tests never fire."""
    from services.api.src.helpline.core.feed import ChangeFeed
    return ChangeFeed()


@pytest.fixture
def storage(tmp_path):
    from services.api.src.helpline.core.storage import AudioStorage
    return AudioStorage(root=tmp_path / "blobs", base_url="http://testserver")


@pytest.fixture
def make_user(engine):
    """Create an account directly in the store and return its row."""
    from services.api.src.helpline.core.auth import hash_password
    from services.api.src.helpline.db.repository import UserRepository

    repo = UserRepository(engine)
    counter = {"n": 0}

    def _make(role: str = "user", name: str = "Test Person") -> dict:
        counter["n"] += 1
        return repo.create(
            email=f"{role}{counter['n']}@example.org",
            name=name,
            role=role,
            password_hash=hash_password("secret-pw", rounds=1000),
        )

    return _make


# =============================================================================
# INTEGRATION TEST FIXTURES (slow, real PostgreSQL)
# =============================================================================

@pytest.fixture(scope="session")
def postgres_container():
    """Create a PostgreSQL container for integration tests.

    Only created if integration tests are being run.
    """
    from testcontainers.postgres import PostgresContainer

    with PostgresContainer("postgres:15-alpine") as postgres:
        yield postgres


@pytest.fixture
def pg_engine(postgres_container):
    """Create a fresh PostgreSQL engine for each integration test."""
    from sqlalchemy import create_engine

    url = postgres_container.get_connection_url()
    eng = create_engine(url)

    # Create all tables
    metadata.create_all(eng)

    yield eng

    # Clean up
    metadata.drop_all(eng)
    eng.dispose()
