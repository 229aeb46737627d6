from __future__ import annotations

import time
from typing import Callable, Dict, List, Tuple

import pytest

from pairup_scraper.config.settings import reset_settings
from pairup_scraper.models.activity import DatabaseManager
from pairup_scraper.sources.base import AcquisitionSource, ActivityRecord

Hook = Callable[[], None]


class FakeSource(AcquisitionSource):
    """In-memory source that records every call it receives."""

    name = "fake"

    def __init__(self, factory: "FakeSourceFactory", cycle: int):
        self.factory = factory
        self.cycle = cycle
        self.close_count = 0
        self.persisted: List[ActivityRecord] = []

    async def fetch(self) -> list[ActivityRecord]:
        self.factory.record(self.cycle, "fetch")
        hook = self.factory.fetch_hooks.get(self.cycle)
        if hook:
            hook()
        return [ActivityRecord(source_id=f"{self.cycle}-1", title="hiking")]

    async def persist(self, records: list[ActivityRecord]) -> None:
        self.factory.record(self.cycle, "persist")
        hook = self.factory.persist_hooks.get(self.cycle)
        if hook:
            hook()
        self.persisted.extend(records)

    async def aclose(self) -> None:
        self.close_count += 1
        self.factory.record(self.cycle, "close")


class FakeSourceFactory:
    """Hands out a new FakeSource per call and keeps an ordered event log."""

    def __init__(self):
        self.events: List[Tuple[int, str, float]] = []
        self.sources: List[FakeSource] = []
        self.fetch_hooks: Dict[int, Hook] = {}
        self.persist_hooks: Dict[int, Hook] = {}

    def __call__(self) -> FakeSource:
        cycle = len(self.sources) + 1
        self.record(cycle, "open")
        source = FakeSource(self, cycle)
        self.sources.append(source)
        return source

    def record(self, cycle: int, name: str) -> None:
        self.events.append((cycle, name, time.monotonic()))

    def calls(self, cycle: int) -> list[str]:
        return [name for c, name, _ in self.events if c == cycle]

    def index_of(self, cycle: int, name: str) -> int:
        for i, (c, n, _) in enumerate(self.events):
            if c == cycle and n == name:
                return i
        raise LookupError(f"no {name} event for cycle {cycle}")

    def time_of(self, cycle: int, name: str) -> float:
        return self.events[self.index_of(cycle, name)][2]


def _raiser(exc: BaseException) -> Hook:
    def hook() -> None:
        raise exc

    return hook


@pytest.fixture(name="source_factory")
def fixture_source_factory() -> FakeSourceFactory:
    return FakeSourceFactory()


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch):
    """Keep settings, env overrides and the database singleton test-local."""

    for key in (
        "PAIRUP_CONFIG",
        "PAIRUP_DB_PATH",
        "PAIRUP_INTERVAL_SECONDS",
        "PAIRUP_SOURCE_URL",
    ):
        monkeypatch.delenv(key, raising=False)
    reset_settings()
    DatabaseManager.reset_instance()
    yield
    reset_settings()
    DatabaseManager.reset_instance()


@pytest.fixture(name="raiser")
def fixture_raiser() -> Callable[[BaseException], Hook]:
    """Build a hook that raises the given exception."""

    return _raiser
