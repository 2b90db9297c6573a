"""
Restricted expression language for rule conditions and value templates.

Text is tokenized, parsed into an immutable syntax tree and interpreted
against an explicit read-only scope. Expressions never compile to or run
host-language code; the only callables are the allow-listed helpers.
"""

from typing import Any, Mapping, Optional

from ..core.errors import ParseError
from .evaluator import BASE_HELPERS, Builtin, Namespace, evaluate, template_helpers, truthy
from .parser import parse_expression


def evaluate_expression(
    source: str,
    scope: Mapping[str, Any],
    helpers: Optional[Mapping[str, Any]] = None,
) -> Any:
    """
    Parse and evaluate expression text.

    Raises:
        ExpressionError: ParseError for malformed text, EvaluationError for
            failures against the scope
    """
    if not isinstance(source, str):
        raise ParseError(f"Expression must be a string, got {type(source).__name__}")
    return evaluate(parse_expression(source), scope, helpers)


__all__ = [
    "BASE_HELPERS",
    "Builtin",
    "Namespace",
    "evaluate",
    "evaluate_expression",
    "parse_expression",
    "template_helpers",
    "truthy",
]
