"""
Core building blocks for deterministic rule execution.

- Canonical: deterministic serialization and content hashing
- KeyPath: get/set access to the nested record tree
- Plan/Step: immutable step list consumed by the interpreter
- Clock/IDs: timestamp and identifier sources
- Errors: exception taxonomy
"""

from .canonical import canonicalize, canonical_json_bytes, canonical_json_str, content_hash
from .clock import DeterministicClock, SystemClock
from .context import EngineContext, LogLevel, RuntimeOptions
from .errors import (
    EvaluationError,
    ExpressionError,
    IntegrityError,
    KernError,
    ParseError,
    PathError,
    PlanError,
)
from .ids import new_id
from .paths import MISSING, WILDCARD, KeyPath, get_path, set_path
from .plan import Plan, Step, load_plan, parse_plan

__all__ = [
    "canonicalize",
    "canonical_json_bytes",
    "canonical_json_str",
    "content_hash",
    "DeterministicClock",
    "SystemClock",
    "EngineContext",
    "LogLevel",
    "RuntimeOptions",
    "KernError",
    "PathError",
    "ExpressionError",
    "ParseError",
    "EvaluationError",
    "PlanError",
    "IntegrityError",
    "new_id",
    "MISSING",
    "WILDCARD",
    "KeyPath",
    "get_path",
    "set_path",
    "Plan",
    "Step",
    "load_plan",
    "parse_plan",
]
