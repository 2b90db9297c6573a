"""
Exception types for the rule execution engine.

Only plan loading and strict ledger verification raise these to callers.
Inside a run every expected failure is converted into a violation record.
"""


class KernError(Exception):
    """Base class for engine errors."""
    pass


class PathError(KernError):
    """Raised when a key path is malformed or cannot be written."""
    pass


class ExpressionError(KernError):
    """Raised when a rule expression cannot be parsed or evaluated."""
    pass


class ParseError(ExpressionError):
    """Raised when expression text does not match the grammar."""
    pass


class EvaluationError(ExpressionError):
    """Raised when a parsed expression fails against its scope."""
    pass


class PlanError(KernError):
    """Raised when a plan or binding document is malformed."""
    pass


class IntegrityError(KernError):
    """Raised when ledger hash verification fails."""
    pass
