"""Controllable time provider for tests."""

from datetime import UTC, datetime, timedelta

from git_issue.gateway.time.abc import Time

DEFAULT_FAKE_TIME = datetime(2024, 1, 15, 14, 30, 0, tzinfo=UTC)


class FakeTime(Time):
    """Fake clock that never actually sleeps.

    Each call to now() returns the current fake time and then advances it by
    `tick`, so successive events get distinct, ordered timestamps. Sleeps are
    recorded and advance the clock by the slept amount.
    """

    def __init__(
        self,
        *,
        current_time: datetime | None = None,
        tick: timedelta | None = None,
    ) -> None:
        """Create FakeTime.

        Args:
            current_time: Starting time (defaults to 2024-01-15 14:30 UTC)
            tick: Amount to advance after each now() call (defaults to one second)
        """
        self._current_time = current_time if current_time is not None else DEFAULT_FAKE_TIME
        self._tick = tick if tick is not None else timedelta(seconds=1)
        self._sleep_calls: list[float] = []

    @property
    def sleep_calls(self) -> list[float]:
        """Durations passed to sleep(), in call order."""
        return list(self._sleep_calls)

    def now(self) -> datetime:
        result = self._current_time
        self._current_time = self._current_time + self._tick
        return result

    def sleep(self, seconds: float) -> None:
        self._sleep_calls.append(seconds)
        self._current_time = self._current_time + timedelta(seconds=seconds)
