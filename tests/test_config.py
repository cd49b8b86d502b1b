import pytest

from leakgate import config
from leakgate.config import Settings, reload_settings, settings, store_from_settings


@pytest.fixture(autouse=True)
def restore_settings():
    original = settings.model_dump()
    yield
    settings.__dict__.update(original)


def test_defaults():
    cfg = Settings()

    assert cfg.LEAKY_CAPACITY == 20
    assert cfg.LEAKY_LEAK_RATE == 5.0
    assert cfg.LEAKY_TTL_SECONDS == 600.0
    assert cfg.LEAKY_MAX_ENTRIES == 10_000
    assert cfg.LEAKY_SWEEP_SECONDS is None


def test_reload_reads_environment(monkeypatch):
    monkeypatch.setenv("LEAKY_CAPACITY", "3")
    monkeypatch.setenv("LEAKY_LEAK_RATE", "0.5")
    monkeypatch.setenv("RATE_LIMIT_ENABLED", "false")

    fresh = reload_settings()

    assert fresh is config.settings
    assert fresh.LEAKY_CAPACITY == 3
    assert fresh.LEAKY_LEAK_RATE == 0.5
    assert fresh.RATE_LIMIT_ENABLED is False


def test_invalid_environment_names_variable(monkeypatch):
    monkeypatch.setenv("LEAKY_CAPACITY", "0")

    with pytest.raises(RuntimeError, match="LEAKY_CAPACITY"):
        reload_settings()


def test_store_from_settings():
    store = store_from_settings(
        Settings(LEAKY_CAPACITY=7, LEAKY_LEAK_RATE=2.0, LEAKY_TTL_SECONDS=30, LEAKY_MAX_ENTRIES=5)
    )

    assert store.capacity == 7
    assert store.leak_rate == 2.0
    assert store.ttl == 30.0
    assert store.max_entries == 5


def test_reload_keeps_values_for_blank_variables(monkeypatch):
    settings.LEAKY_CAPACITY = 9
    monkeypatch.setenv("LEAKY_CAPACITY", "")

    assert reload_settings().LEAKY_CAPACITY == 9
