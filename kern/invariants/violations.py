"""
Violation records.

A violation is created whenever a structural check, a bound check, an
unknown primitive or a primitive-reported error fires. It is immutable once
created and is appended to both the audit trail and the ledger.
"""

from dataclasses import dataclass
from typing import Any, Dict

VIOLATION_TYPE = "InvariantViolation"
SAMPLE_KEYS = 3


def sample_data(data: Any) -> Any:
    """First SAMPLE_KEYS keys of a mapping; anything else is returned as is."""
    if not data or not isinstance(data, dict):
        return data
    return {k: data[k] for k in list(data)[:SAMPLE_KEYS]}


def violation_type(message: str) -> str:
    """Normalized type label: the message text before the first colon."""
    return message.split(":", 1)[0].strip()


@dataclass(frozen=True)
class Violation:
    """
    Immutable violation record.

    Fields:
        tick: Tick of the step attempt that produced it
        primitive: Operation name of the step
        message: Human-readable description ("<Type>: <detail>")
        input_sample: First keys of the combined input
        output_sample: First keys of the rendered output
        timestamp: ISO-8601 creation time
    """
    tick: int
    primitive: str
    message: str
    input_sample: Any
    output_sample: Any
    timestamp: str
    type: str = VIOLATION_TYPE

    @property
    def label(self) -> str:
        return violation_type(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tick": self.tick,
            "primitive": self.primitive,
            "type": self.type,
            "message": self.message,
            "inputSample": self.input_sample,
            "outputSample": self.output_sample,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Violation":
        return cls(
            tick=data["tick"],
            primitive=data["primitive"],
            message=data["message"],
            input_sample=data.get("inputSample"),
            output_sample=data.get("outputSample"),
            timestamp=data["timestamp"],
            type=data.get("type", VIOLATION_TYPE),
        )
