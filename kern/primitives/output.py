"""
Primitive output variant.

Every primitive returns a PrimitiveOutput whose kind tells the interpreter
how the call ended. to_dict() renders the wire mapping stored in the ledger
and read by output-field application and bound checks.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

VIOLATION_KEY = "_violation"


class OutputKind(str, Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    ERROR = "error"
    VIOLATION = "violation"


@dataclass(frozen=True)
class PrimitiveOutput:
    """
    Result of one primitive invocation.

    Fields:
        kind: How the call ended
        fields: Result keys a step's output_fields may reference
        error: Failure message (ERROR only)
        violation: Synthetic violation label (VIOLATION only)
        reason: Why the call was skipped (SKIPPED only)
    """
    kind: OutputKind
    fields: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    violation: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def completed(cls, **fields: Any) -> "PrimitiveOutput":
        return cls(OutputKind.COMPLETED, fields)

    @classmethod
    def skipped(cls, reason: str, **fields: Any) -> "PrimitiveOutput":
        return cls(OutputKind.SKIPPED, fields, reason=reason)

    @classmethod
    def failed(cls, error: str, **fields: Any) -> "PrimitiveOutput":
        return cls(OutputKind.ERROR, fields, error=error)

    @classmethod
    def flagged(cls, violation: str, **fields: Any) -> "PrimitiveOutput":
        return cls(OutputKind.VIOLATION, fields, violation=violation)

    @property
    def is_error(self) -> bool:
        return self.kind is OutputKind.ERROR

    @property
    def is_flagged(self) -> bool:
        return self.kind is OutputKind.VIOLATION

    def to_dict(self) -> Dict[str, Any]:
        if self.kind is OutputKind.SKIPPED:
            return {"skipped": True, "reason": self.reason, **self.fields}
        if self.kind is OutputKind.ERROR:
            return {"error": self.error, **self.fields}
        if self.kind is OutputKind.VIOLATION:
            return {**self.fields, VIOLATION_KEY: self.violation}
        return dict(self.fields)
