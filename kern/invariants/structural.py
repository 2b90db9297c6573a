"""
Structural invariant checks.

These run after every primitive call regardless of binding configuration.
Each returns the violation messages the output triggers.
"""

import math
from typing import List

from ..primitives.output import PrimitiveOutput

SCORE_FIELD = "normalized_score"


def synthetic_violation(output: PrimitiveOutput) -> List[str]:
    """Violation reported by the primitive itself."""
    if output.is_flagged:
        return [f"Synthetic violation: {output.violation}"]
    return []


def structural_violations(output: PrimitiveOutput) -> List[str]:
    """
    Fixed checks applied to every output.

    - NaN normalized_score (not repeated when the primitive already flagged
      the output, so one defect yields one violation)
    - empty output mapping
    - error field
    """
    messages: List[str] = []
    rendered = output.to_dict()

    score = rendered.get(SCORE_FIELD)
    if isinstance(score, float) and math.isnan(score) and not output.is_flagged:
        messages.append(f"NaN {SCORE_FIELD} detected")

    if not rendered:
        messages.append("Empty output object")

    if output.is_error:
        messages.append(f"Primitive error: {output.error}")

    return messages
