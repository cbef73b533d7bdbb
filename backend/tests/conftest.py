from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker

from core.auth import Role, Session
from core.notifications import CollectingNotifier
from core.service import InventoryService
from db.database import create_db_and_tables
from tests.factories import FlakyStore, demo_items, make_engine


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))
        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def engine():
    engine = make_engine()
    await create_db_and_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def store(session_maker):
    store = FlakyStore(session_maker, timeout=5)
    await store.replace_items(demo_items())
    return store


@pytest.fixture
def notifier():
    return CollectingNotifier()


@pytest.fixture
async def service(store, notifier):
    service = InventoryService(store, notifier=notifier)
    await service.load_all()
    return service


@pytest.fixture
def admin():
    return Session(username="Admin", role=Role.ADMIN)


@pytest.fixture
def production():
    return Session(username="Production", role=Role.PRODUCTION)
