"""Shared fixtures."""

import threading

import pytest

from tablecache import Database, ExistenceCache


class StubChecker:
    """Underlying existence check with a fixed answer set and a call log."""

    def __init__(self, existing: dict[str, bool] | None = None):
        self.existing = existing or {}
        self.calls: list[tuple[str, dict]] = []
        self._lock = threading.Lock()

    def __call__(self, table, **options) -> bool:
        with self._lock:
            self.calls.append((table, options))
        return self.existing.get(table, False)

    @property
    def call_count(self) -> int:
        return len(self.calls)


@pytest.fixture
def checker() -> StubChecker:
    return StubChecker({"public.users": True, "public.ghost": False, "public.orders": True})


@pytest.fixture
def cache(checker: StubChecker) -> ExistenceCache:
    return ExistenceCache(check=checker)


@pytest.fixture
def db():
    with Database() as database:
        yield database
