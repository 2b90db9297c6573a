"""
Built-in primitive library.

Primitives never raise for expected failures (bad path, bad expression,
empty input). They report through the PrimitiveOutput kind instead. Only
STATE_MUTATOR and RULE_APPLICATOR write to the record, and only up to the
point of failure.
"""

import copy
import logging
import math
from typing import Any, Dict, List, Mapping

from ..core.context import EngineContext
from ..core.errors import ExpressionError, PathError
from ..core.paths import WILDCARD, KeyPath
from ..expr import evaluate_expression, template_helpers, truthy
from ..expr.evaluator import is_number, normalize_number, to_number
from .output import PrimitiveOutput

logger = logging.getLogger(__name__)

CONDITION_EVALUATOR = "CONDITION_EVALUATOR"
EXPRESSION_EVALUATOR = "EXPRESSION_EVALUATOR"
STATE_MUTATOR = "STATE_MUTATOR"
COMPOSITE_SCORER = "COMPOSITE_SCORER"
RULE_APPLICATOR = "RULE_APPLICATOR"

NAN = float("nan")


def evaluation_scope(inputs: Mapping[str, Any]) -> Mapping[str, Any]:
    """
    Scope for the evaluator primitives.

    An explicit "context" parameter wins; otherwise a wildcard "*" input (the
    whole record) is used; otherwise the scope is empty.
    """
    ctx = inputs.get("context")
    if isinstance(ctx, dict):
        return ctx
    whole = inputs.get(WILDCARD)
    if isinstance(whole, dict):
        return whole
    return {}


def condition_evaluator(inputs: Dict[str, Any], ctx: EngineContext) -> PrimitiveOutput:
    try:
        value = evaluate_expression(inputs.get("condition"), evaluation_scope(inputs))
    except ExpressionError as ex:
        return PrimitiveOutput.failed(str(ex), result=False)
    return PrimitiveOutput.completed(result=truthy(value))


def expression_evaluator(inputs: Dict[str, Any], ctx: EngineContext) -> PrimitiveOutput:
    try:
        value = evaluate_expression(inputs.get("expression"), evaluation_scope(inputs))
    except ExpressionError as ex:
        return PrimitiveOutput.failed(str(ex))

    if isinstance(value, float) and math.isnan(value):
        return PrimitiveOutput.flagged("NaN_detected", value=value)
    return PrimitiveOutput.completed(value=value)


def state_mutator(inputs: Dict[str, Any], ctx: EngineContext) -> PrimitiveOutput:
    path = inputs.get("path")
    value = inputs.get("value")

    if not isinstance(path, str) or not path:
        logger.warning("STATE_MUTATOR: missing or invalid path %r", path)
        return PrimitiveOutput.completed(success=False, message="Invalid or missing path")

    if value is None:
        return PrimitiveOutput.flagged("empty_output_detected", success=False)

    try:
        KeyPath.parse(path).set(ctx.state, copy.deepcopy(value))
    except PathError as ex:
        logger.warning("STATE_MUTATOR: cannot write %r: %s", path, ex)
        return PrimitiveOutput.completed(success=False, message=str(ex))

    return PrimitiveOutput.completed(success=True, updatedPath=path, newValue=value)


def composite_scorer(inputs: Dict[str, Any], ctx: EngineContext) -> PrimitiveOutput:
    scores = inputs.get("scores") or []
    if not isinstance(scores, list):
        return PrimitiveOutput.failed("scores must be a sequence of numbers")
    if not scores:
        return PrimitiveOutput.flagged("empty_scores_array", normalized_score=NAN)

    if truthy(inputs.get("trigger_nan_test")):
        return PrimitiveOutput.flagged("synthetic_NaN_test", normalized_score=NAN)

    bad = [s for s in scores if not is_number(s)]
    if bad:
        return PrimitiveOutput.failed(f"Non-numeric score: {bad[0]!r}")

    try:
        normalized = sum(scores) / len(scores)
    except OverflowError as ex:
        return PrimitiveOutput.failed(f"Score mean out of range: {ex}")

    return PrimitiveOutput.completed(normalized_score=normalize_number(normalized))


def resolve_assignment(expression: Any, state: Mapping[str, Any], helpers: Mapping[str, Any]) -> Any:
    """
    Resolve one assignment right-hand side.

    - "{{ expr }}" is evaluated against the record with template helpers
    - "true"/"false" become booleans
    - numeric-looking strings become numbers
    - anything else is used verbatim
    """
    if isinstance(expression, str):
        if expression.startswith("{{") and expression.endswith("}}"):
            return evaluate_expression(expression[2:-2].strip(), state, helpers)
        if expression == "true":
            return True
        if expression == "false":
            return False
        if expression.strip():
            n = to_number(expression)
            if not (isinstance(n, float) and math.isnan(n)):
                return n
        return expression
    return copy.deepcopy(expression)


def rule_applicator(inputs: Dict[str, Any], ctx: EngineContext) -> PrimitiveOutput:
    rule_id = inputs.get("ruleId")
    condition = inputs.get("condition")
    assignments = inputs.get("assignments")
    priority = inputs.get("priority")

    if not truthy(inputs.get("enabled")):
        return PrimitiveOutput.skipped("Rule disabled", ruleId=rule_id)

    # Non-string truthy conditions (a boolean true from converted rules) pass
    if isinstance(condition, str) and condition and condition != "true":
        try:
            met = truthy(evaluate_expression(condition, ctx.state))
        except ExpressionError as ex:
            return PrimitiveOutput.failed(
                f"Condition evaluation failed: {ex}",
                condition=condition,
                ruleId=rule_id,
            )
        if not met:
            return PrimitiveOutput.skipped("Condition not met", condition=condition, ruleId=rule_id)

    if assignments is None:
        assignments = {}
    if not isinstance(assignments, dict):
        return PrimitiveOutput.failed("Assignments must be a mapping", ruleId=rule_id)

    helpers = template_helpers(ctx.clock)
    updates: List[Dict[str, Any]] = []
    results: Dict[str, Any] = {}

    for field_path, expression in assignments.items():
        try:
            value = resolve_assignment(expression, ctx.state, helpers)
            KeyPath.parse(field_path).set(ctx.state, copy.deepcopy(value))
        except (ExpressionError, PathError) as ex:
            return PrimitiveOutput.failed(
                f"Assignment failed for {field_path}: {ex}",
                expression=expression,
                fieldPath=field_path,
                ruleId=rule_id,
            )
        updates.append({"field": field_path, "value": value})
        results[field_path] = value

    return PrimitiveOutput.completed(
        success=True,
        ruleId=rule_id,
        priority=priority,
        updatesApplied=len(updates),
        updates=updates,
        results=results,
    )
