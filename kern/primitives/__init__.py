"""
Primitive operations.

- PrimitiveOutput: tagged result variant (completed/skipped/error/violation)
- PrimitiveRegistry: operation name -> primitive function
- library: the built-in primitives
"""

from .output import VIOLATION_KEY, OutputKind, PrimitiveOutput
from .registry import Primitive, PrimitiveRegistry
from .library import (
    COMPOSITE_SCORER,
    CONDITION_EVALUATOR,
    EXPRESSION_EVALUATOR,
    RULE_APPLICATOR,
    STATE_MUTATOR,
)

__all__ = [
    "VIOLATION_KEY",
    "OutputKind",
    "PrimitiveOutput",
    "Primitive",
    "PrimitiveRegistry",
    "COMPOSITE_SCORER",
    "CONDITION_EVALUATOR",
    "EXPRESSION_EVALUATOR",
    "RULE_APPLICATOR",
    "STATE_MUTATOR",
]
