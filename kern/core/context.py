"""
Runtime options and the context handed to primitives.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class LogLevel(str, Enum):
    VERBOSE = "verbose"
    NORMAL = "normal"
    QUIET = "quiet"


@dataclass(frozen=True)
class RuntimeOptions:
    """
    Execution policy for one run.

    Fields:
        halt_on_violation: Stop at the first step boundary after any violation
        collect_all_violations: Accepted for compatibility; violations are
            always collected
        log_level: Per-step log detail
    """
    halt_on_violation: bool = False
    collect_all_violations: bool = True
    log_level: LogLevel = LogLevel.NORMAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "haltOnError": self.halt_on_violation,
            "collectAllViolations": self.collect_all_violations,
            "logLevel": self.log_level.value,
        }


class EngineContext:
    """
    The only engine surface a primitive can see: the run's mutable record and
    the run's clock (None means wall-clock time).

    Primitives must not keep a reference to it after returning.
    """

    __slots__ = ("state", "clock")

    def __init__(self, state: Dict[str, Any], clock: Optional[Any] = None) -> None:
        self.state = state
        self.clock = clock
