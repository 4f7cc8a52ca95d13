import pytest

from opsgate.config import reload_settings_cache
from opsgate.rate_limiter import MemoryStore


class FakeClock:
    """Manually advanced time source for deterministic window tests."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now

    def set(self, value: float) -> float:
        self.now = value
        return self.now


@pytest.fixture(autouse=True)
def _set_env(monkeypatch):
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    reload_settings_cache()
    yield
    reload_settings_cache()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryStore()
