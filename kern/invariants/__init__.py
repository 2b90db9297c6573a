"""
Invariant checking.

- structural: fixed checks applied to every primitive output
- bindings: named checks bound per primitive by external configuration
- violations: immutable violation records
"""

from .bindings import CheckRegistry, InvariantBindings, load_bindings, parse_bindings
from .structural import structural_violations, synthetic_violation
from .violations import Violation, sample_data, violation_type

__all__ = [
    "CheckRegistry",
    "InvariantBindings",
    "load_bindings",
    "parse_bindings",
    "structural_violations",
    "synthetic_violation",
    "Violation",
    "sample_data",
    "violation_type",
]
