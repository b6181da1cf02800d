"""Root test configuration for filescan.

Clears FILESCAN_* environment variables for every test so a developer's shell
(or a real ~/.filescan/config.yaml path in FILESCAN_CONFIG) never leaks into
config or size-limit assertions. Tests that exercise env overrides set them
again with their own monkeypatch calls.
"""

from __future__ import annotations

import pytest

from filescan.analyzer.loader import AnalyzerLoader


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def clear_filescan_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("FILESCAN_CONFIG", raising=False)
    monkeypatch.delenv("FILESCAN_MAX_FILE_SIZE", raising=False)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def loader() -> AnalyzerLoader:
    """A loaded AnalyzerLoader with the built-in rule set."""
    instance = AnalyzerLoader()
    instance.load()
    return instance
