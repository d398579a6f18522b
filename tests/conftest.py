"""
Pytest configuration and fixtures.
"""

import sys
from pathlib import Path
import pytest
import pytest_asyncio
from PySide6.QtCore import QCoreApplication

# Add project root
sys.path.insert(0, str(Path(__file__).parent.parent))

from habitflow.infra.backend import ConfiguredBackend
from habitflow.infra.db import DatabaseEngine
from habitflow.infra.identity import Identity, LocalIdentityProvider
from habitflow.services.state import AppStore
from habitflow.services.sync_service import SyncService


@pytest.fixture(scope="session", autouse=True)
def qt_core_app():
    """Signals are delivered synchronously; a core application is enough"""
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


@pytest_asyncio.fixture
async def db_engine():
    """Create an in-memory SQLite database for testing"""
    engine = DatabaseEngine("sqlite+aiosqlite:///:memory:")
    await engine.create_tables()

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def backend(db_engine):
    return ConfiguredBackend(engine=db_engine)


@pytest.fixture
def store():
    return AppStore()


@pytest.fixture
def identity():
    return LocalIdentityProvider()


@pytest.fixture
def alice():
    return Identity(user_id="alice", email="alice@example.com")


@pytest.fixture
def bob():
    return Identity(user_id="bob", email="bob@example.com")


@pytest_asyncio.fixture
async def sync(store, identity, backend):
    """A started sync service with nobody signed in"""
    service = SyncService(store, identity, backend)
    await service.start()
    yield service
    await service.close()


@pytest_asyncio.fixture
async def signed_in(sync, identity, alice):
    """The sync service after alice signed in and the first refresh finished"""
    await identity.sign_in(alice)
    await sync.wait_for_refresh()
    return sync
