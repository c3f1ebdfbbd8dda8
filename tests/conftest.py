"""
Test configuration for the invoice engine.

Every test gets its own in-memory SQLite database with all tables created.
"""

import pytest

from invoice_engine.config import Settings
from invoice_engine.db import create_tables, make_engine, make_session_factory

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def test_engine():
    """Create a fresh in-memory database."""
    engine = make_engine(TEST_DATABASE_URL)
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    """Session factory bound to the test database."""
    return make_session_factory(test_engine)


@pytest.fixture
async def test_db(session_factory):
    """Session for arranging and inspecting test data."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def test_settings() -> Settings:
    """Engine settings with the documented defaults."""
    return Settings(
        database_url=TEST_DATABASE_URL,
        auto_create_products=False,
        default_allocation_policy="per_kg",
        default_pieces_per_transport_unit=100,
        empty_bucket_fallback="drop",
        duplicate_invoice_policy="return_existing",
        allocate_shipping=True,
    )
