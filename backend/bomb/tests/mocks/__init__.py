from bomb.tests.mocks.cache import InMemoryGameStateCache
from bomb.tests.mocks.connection import MockConnection

__all__ = ["InMemoryGameStateCache", "MockConnection"]
