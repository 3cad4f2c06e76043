import pytest
import pytest_asyncio

from handwriting.core.session import Session
from handwriting.layer import DataLayer
from handwriting.models import CharacterSample, Visibility, Work
from handwriting.persistence.memory import InMemoryPersistenceService
from handwriting.services.sync_engine import RetryPolicy


ADMIN_ID = "u-admin"
ALICE_ID = "u-alice"
BOB_ID = "u-bob"
GUEST_ID = "u-guest"
PASSWORD = "secret123"


class FakeClock:
    """Manually advanced monotonic clock for freshness window tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def backend():
    """
    In-memory persistence seeded with one admin, two contributors and a guest.
    """
    service = InMemoryPersistenceService()
    service.seed_user("admin", PASSWORD, role="admin", user_id=ADMIN_ID)
    service.seed_user("alice", PASSWORD, role="user", user_id=ALICE_ID)
    service.seed_user("bob_01", PASSWORD, role="user", user_id=BOB_ID)
    service.seed_user("guest", PASSWORD, role="guest", user_id=GUEST_ID)
    return service


@pytest.fixture
def clock():
    return FakeClock()


@pytest_asyncio.fixture
async def layer(backend, clock):
    """
    DataLayer on the seeded backend, loaded once. Outstanding pushes are
    drained on teardown so no task outlives the test's event loop.
    """
    data_layer = DataLayer(backend, freshness_window_sec=30, retry=RetryPolicy(max_attempts=1), clock=clock)
    await data_layer.load()
    yield data_layer
    await data_layer.drain()


@pytest.fixture
def session_for(layer):
    """
    Factory fixture building a session straight from the replica (no login round trip).
    """

    def _session_for(user_id: str) -> Session:
        return Session(user=layer.store.get_user(user_id).clone())

    return _session_for


@pytest.fixture
def admin(session_for):
    return session_for(ADMIN_ID)


@pytest.fixture
def alice(session_for):
    return session_for(ALICE_ID)


@pytest.fixture
def bob(session_for):
    return session_for(BOB_ID)


@pytest.fixture
def guest(session_for):
    return session_for(GUEST_ID)


@pytest.fixture
def anonymous():
    return Session.anonymous()


def make_sample(char: str = "永", **fields) -> CharacterSample:
    return CharacterSample(char=char, svg_path="M0 0 L10 10", svg_view_box="0 0 100 100", **fields)


def make_work(**fields) -> Work:
    fields.setdefault("title", "静夜思")
    fields.setdefault("author", "李白")
    fields.setdefault("content", "床前明月光")
    fields.setdefault("visibility", Visibility.PRIVATE)
    return Work(**fields)


class FailingPersistence:
    """
    Wraps a persistence service and fails selected slice writes.

    ``fail`` holds method names (write_samples, write_works, system_action)
    that raise until removed from the set; ``fail_once`` methods fail a single time.
    """

    def __init__(self, inner, fail=()):
        self.inner = inner
        self.fail = set(fail)
        self.fail_once = set()
        self.calls = []

    @property
    def name(self):
        return "failing " + self.inner.name

    def _check(self, method):
        self.calls.append(method)
        if method in self.fail_once:
            self.fail_once.discard(method)
            raise ConnectionError(f"{method} blipped")
        if method in self.fail:
            raise ConnectionError(f"{method} unavailable")

    async def read_all(self, force=False):
        return await self.inner.read_all(force=force)

    async def write_samples(self, user_id, samples):
        self._check("write_samples")
        await self.inner.write_samples(user_id, samples)

    async def write_works(self, user_id, works):
        self._check("write_works")
        await self.inner.write_works(user_id, works)

    async def system_action(self, action, payload):
        self._check("system_action")
        return await self.inner.system_action(action, payload)

    async def auth_action(self, action, username, password):
        return await self.inner.auth_action(action, username, password)


@pytest.fixture
def sample_factory():
    return make_sample


@pytest.fixture
def work_factory():
    return make_work


@pytest_asyncio.fixture
async def failing_layer(backend, clock):
    """
    Factory fixture: a loaded DataLayer whose pushes fail for the given methods.
    Returns (layer, failing persistence wrapper).
    """
    created = []

    async def _failing_layer(fail=(), retry=None):
        persistence = FailingPersistence(backend, fail=fail)
        data_layer = DataLayer(persistence, freshness_window_sec=30,
                               retry=retry or RetryPolicy(max_attempts=1), clock=clock)
        await data_layer.load()
        await data_layer.drain()
        created.append(data_layer)
        return data_layer, persistence

    yield _failing_layer
    for data_layer in created:
        await data_layer.drain()
