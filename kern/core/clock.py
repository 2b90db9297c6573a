"""
Clock implementations.

The engine stamps ledger entries and violations with wall-clock ISO-8601
timestamps and measures run duration. Tests and replay verification inject a
DeterministicClock so that stamped payloads hash identically across runs.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timezone


def iso_timestamp(epoch_ms: int) -> str:
    """Render epoch milliseconds as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    dt = datetime.fromtimestamp(epoch_ms / 1000.0, tz=timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{epoch_ms % 1000:03d}Z"


class SystemClock:
    """Wall-clock time source used for production runs."""

    def epoch_ms(self) -> int:
        return int(time.time() * 1000)

    def timestamp(self) -> str:
        return iso_timestamp(self.epoch_ms())

    def monotonic_ms(self) -> float:
        return time.perf_counter() * 1000.0


@dataclass(frozen=True)
class DeterministicClock:
    """
    Deterministic time source.

    Always reports the same instant, so replayed runs stamp identical
    timestamps and run ids.
    """
    current: int = 0

    def epoch_ms(self) -> int:
        return self.current

    def timestamp(self) -> str:
        return iso_timestamp(self.current)

    def monotonic_ms(self) -> float:
        return float(self.current)
