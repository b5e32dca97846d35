import pytest

from bingo.messaging.router import MessageRouter
from bingo.server.app import create_app
from bingo.server.settings import BingoServerSettings
from bingo.session.manager import SessionManager
from bingo.tests.helpers.session import TEST_ADMIN_SECRET
from bingo.tests.mocks import MockConnection
from shared.dal import InMemoryBingoRepository


@pytest.fixture
def repository():
    return InMemoryBingoRepository()


@pytest.fixture
def session_manager(repository):
    return SessionManager(admin_secret=TEST_ADMIN_SECRET, repository=repository)


@pytest.fixture
def message_router(session_manager):
    return MessageRouter(session_manager)


@pytest.fixture
def mock_connection():
    return MockConnection()


@pytest.fixture
def settings():
    return BingoServerSettings(admin_secret=TEST_ADMIN_SECRET, storage_backend="memory")


@pytest.fixture
def app(settings, session_manager, message_router):
    return create_app(settings=settings, session_manager=session_manager, message_router=message_router)
