import sys
from datetime import UTC, datetime
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
from network_blocker import install_network_blocker
from search_fakes import FakeSearchGateway

from trips.time_windows import TimeWindowResolver

FIXED_NOW = datetime(2024, 6, 15, 10, 0, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def _default_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ELASTIC_URL", "http://elastic.test:9200")
    install_network_blocker(monkeypatch)


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def resolver() -> TimeWindowResolver:
    return TimeWindowResolver(clock=lambda: FIXED_NOW)


@pytest.fixture
def gateway() -> FakeSearchGateway:
    return FakeSearchGateway()
