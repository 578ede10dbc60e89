import pytest

from game.tests.helpers.factories import make_service, make_sqlite_store, make_store


@pytest.fixture
async def store():
    """In-memory store seeded with the twelve-card test catalog."""
    data_store = await make_store()
    yield data_store
    await data_store.close()


@pytest.fixture(params=["memory", "sqlite"])
async def backend_store(request, tmp_path):
    """The twelve-card store on each storage backend."""
    if request.param == "memory":
        data_store = await make_store()
    else:
        data_store = await make_sqlite_store(tmp_path / "games.db")
    yield data_store
    await data_store.close()


@pytest.fixture
def service(store):
    return make_service(store)


@pytest.fixture
async def game(store):
    """A WAITING game with no players."""
    return await store.games.create("ROOM01")
