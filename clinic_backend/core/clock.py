from datetime import UTC, datetime
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Naive UTC wall clock, comparable with TIMESTAMP WITHOUT TIME ZONE columns."""

    def now(self) -> datetime:
        return datetime.now(UTC).replace(tzinfo=None)


system_clock = SystemClock()
