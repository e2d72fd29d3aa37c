"""
Test configuration and fixtures

Each test gets its own SQLite database file so reconciliation runs against a
real SQLAlchemy session and transaction, and its own IdentityService with a
fresh KeyedMutex.
"""

import os

# Set test environment variables before importing the app
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.pool import NullPool

from database import DatabaseManager
from main import app, get_identity_service
from models.contact import Contact
from services.identity_service import IdentityService
from services.keyed_mutex import KeyedMutex


@pytest_asyncio.fixture
async def database(tmp_path):
    """Fresh database with the schema created"""
    manager = DatabaseManager(f"sqlite+aiosqlite:///{tmp_path / 'contacts.db'}", poolclass=NullPool)
    await manager.create_tables()
    yield manager
    await manager.dispose()


@pytest.fixture
def service(database):
    return IdentityService(database=database, lock=KeyedMutex())


@pytest_asyncio.fixture
async def client(service):
    """HTTP client talking to the app with the test service injected"""
    app.dependency_overrides[get_identity_service] = lambda: service
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()


@pytest.fixture
def fetch_contacts(database):
    """Read every stored contact, oldest first"""

    async def _fetch():
        async with database.get_session() as session:
            result = await session.execute(select(Contact).order_by(Contact.id))
            return list(result.scalars().all())

    return _fetch
