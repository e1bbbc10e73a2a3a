"""Test configuration for the merlin-mongo adapter."""

from types import SimpleNamespace

import pytest

from merlin_mongo import MerlinMongo

pytest_plugins = ["pytest_asyncio"]

MERLIN_MONGO_OPTS = {
    "databaseUrl": "mongodb://mock:27017/merlin-mongo",
    "database": "test_db",
}


def make_merlin(**models):
    """Build a minimal host ORM: ``make_merlin(Test="tests")``."""
    return SimpleNamespace(
        opts={},
        models={
            name: SimpleNamespace(collection_name=collection)
            for name, collection in models.items()
        },
        Model=SimpleNamespace(),
    )


class StubResult:
    """Result object shaped like pymongo's write results."""

    def __init__(self, **fields):
        self.__dict__.update(fields)


class StubCursor:
    """Async cursor over a fixed list of documents."""

    def __init__(self, docs, error=None):
        self._docs = list(docs)
        self._error = error

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for doc in self._docs:
            yield doc
        if self._error is not None:
            raise self._error


@pytest.fixture
def host_factory():
    return make_merlin


@pytest.fixture
def stub_cursor():
    return StubCursor


@pytest.fixture
def stub_result():
    return StubResult


@pytest.fixture
def merlin():
    return make_merlin(Test="tests")


@pytest.fixture
def adapter(merlin):
    """Adapter that has not connected; register handles by hand."""
    return MerlinMongo(merlin, MERLIN_MONGO_OPTS)


@pytest.fixture
async def mongo_adapter(merlin):
    """Adapter connected to an in-memory mongomock-motor client."""
    try:
        from mongomock_motor import AsyncMongoMockClient
    except ImportError:
        pytest.skip("mongomock-motor not installed")

    adapter = MerlinMongo(merlin, MERLIN_MONGO_OPTS)
    adapter.connection._client = AsyncMongoMockClient()
    await adapter.connect()

    yield adapter

    adapter.collections.clear()
