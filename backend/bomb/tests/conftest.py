import pytest

from bomb.messaging.router import MessageRouter
from bomb.server.app import create_app
from bomb.server.settings import BombServerSettings
from bomb.session.manager import SessionManager
from bomb.tests.helpers.auth import TEST_TOKEN_SECRET
from bomb.tests.mocks import InMemoryGameStateCache, MockConnection


@pytest.fixture
def cache():
    return InMemoryGameStateCache()


@pytest.fixture
def session_manager(cache):
    return SessionManager(token_secret=TEST_TOKEN_SECRET, cache=cache)


@pytest.fixture
def message_router(session_manager):
    return MessageRouter(session_manager)


@pytest.fixture
def mock_connection():
    return MockConnection()


@pytest.fixture
def settings():
    return BombServerSettings(token_secret=TEST_TOKEN_SECRET, cors_origins=["http://localhost:3000"])


@pytest.fixture
def app(settings, session_manager, message_router):
    return create_app(
        settings=settings,
        session_manager=session_manager,
        message_router=message_router,
    )
