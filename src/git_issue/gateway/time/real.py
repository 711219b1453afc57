"""Production time provider backed by the system clock."""

import time
from datetime import UTC, datetime

from git_issue.gateway.time.abc import Time


class RealTime(Time):
    """Time provider using datetime.now() and time.sleep()."""

    def now(self) -> datetime:
        return datetime.now(UTC)

    def sleep(self, seconds: float) -> None:
        time.sleep(seconds)
