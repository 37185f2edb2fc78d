"""Shared fixtures for BreakShield tests."""
import pytest

from breakshield.database import BlockMode, RestrictionConfig, SharedStateStore, init_database
from breakshield.selection import Selection
from breakshield.services.lifecycle import LifecycleService

T0 = 1_700_000_000.0


class FakeEngine:
    """Records restriction engine calls."""

    def __init__(self):
        self.applied = []
        self.clears = 0
        self.fail = False

    def apply(self, selection):
        if self.fail:
            raise RuntimeError("engine unavailable")
        self.applied.append(selection)

    def clear(self):
        if self.fail:
            raise RuntimeError("engine unavailable")
        self.clears += 1


class FakeSchedules:
    """Records schedule adapter calls."""

    def __init__(self):
        self.armed = {}
        self.cancelled = []
        self.fail = False

    def arm(self, name, start_at, end_at, recurring=False, threshold=None):
        if self.fail:
            raise RuntimeError("scheduler unavailable")
        self.armed[name] = (start_at, end_at, recurring, threshold)

    def cancel(self, names):
        if self.fail:
            raise RuntimeError("scheduler unavailable")
        for name in names:
            self.cancelled.append(name)
            self.armed.pop(name, None)

    def is_armed(self, name):
        return name in self.armed


class FakeClock:
    def __init__(self, now=T0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'breakshield.db'}"


@pytest.fixture
def session_factory(db_url):
    return init_database(db_url)


@pytest.fixture
def store(session_factory):
    return SharedStateStore(session_factory)


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def schedules():
    return FakeSchedules()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def service(store, engine, schedules, clock):
    return LifecycleService(store, engine, schedules, clock=clock)


@pytest.fixture
def selection():
    return Selection.of(applications=["tiktok", "instagram"], web_domains=["reddit.com"])


@pytest.fixture
def configure(store, selection):
    """Save an enabled configuration in the given mode."""
    def _configure(mode=BlockMode.INSTANT, enabled=True):
        store.save_config(RestrictionConfig(selection=selection, mode=mode, enabled=enabled))
    return _configure
