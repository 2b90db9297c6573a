"""
Tree-walking interpreter for rule expressions.

Expressions are evaluated against an explicit, read-only scope (normally the
current record) plus a fixed table of allow-listed helpers. Nothing in an
expression can reach host-language objects: names resolve only to scope data
or to Builtin/Namespace helpers, and only those helpers are callable.

Value semantics follow the rule authoring language the plans are written in:
numeric operators coerce their operands and yield NaN instead of raising,
"+" concatenates when either side is a string, && and || return one of their
operands, and empty arrays/objects are truthy.
"""

import copy
import math
import re
from typing import Any, Callable, Dict, Mapping, Optional

from ..core.clock import SystemClock
from ..core.errors import EvaluationError
from ..core.ids import new_id
from .nodes import (
    ArrayLiteral,
    Binary,
    Call,
    Conditional,
    Expr,
    Index,
    Literal,
    Logical,
    Member,
    Name,
    Unary,
)

NAN = float("nan")
_MAX_SAFE = 2 ** 53
_DECIMAL = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")
_MAX_FIXED_DIGITS = 100


class Builtin:
    """An allow-listed callable exposed to expressions."""

    __slots__ = ("name", "fn")

    def __init__(self, name: str, fn: Callable[..., Any]) -> None:
        self.name = name
        self.fn = fn

    def __call__(self, *args: Any) -> Any:
        return self.fn(*args)

    def __repr__(self) -> str:
        return f"<builtin {self.name}>"


class Namespace:
    """A named group of helpers (Math, Number); optionally callable itself."""

    __slots__ = ("name", "members", "call")

    def __init__(
        self,
        name: str,
        members: Dict[str, Any],
        call: Optional[Builtin] = None,
    ) -> None:
        self.name = name
        self.members = members
        self.call = call

    def __repr__(self) -> str:
        return f"<namespace {self.name}>"


# ---------------------------------------------------------------------------
# Coercions
# ---------------------------------------------------------------------------

def is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def normalize_number(x: Any) -> Any:
    """Collapse integral floats to int so 10 / 2 renders as 5, not 5.0."""
    if isinstance(x, float) and math.isfinite(x) and x.is_integer() and abs(x) < _MAX_SAFE:
        return int(x)
    return x


def to_number(v: Any) -> Any:
    if isinstance(v, bool):
        return 1 if v else 0
    if is_number(v):
        return v
    if isinstance(v, str):
        text = v.strip()
        if not text:
            return 0
        if text in ("Infinity", "+Infinity"):
            return math.inf
        if text == "-Infinity":
            return -math.inf
        # float() alone would also take "1_000", "inf" and "nan"
        if not _DECIMAL.match(text):
            return NAN
        return normalize_number(float(text))
    if isinstance(v, list) and len(v) <= 1:
        return to_number(v[0]) if v else 0
    return NAN


def to_string(v: Any) -> str:
    if v is None:
        return "null"
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, float):
        if math.isnan(v):
            return "NaN"
        if math.isinf(v):
            return "Infinity" if v > 0 else "-Infinity"
        return str(normalize_number(v))
    if isinstance(v, list):
        return ",".join("" if x is None else to_string(x) for x in v)
    if isinstance(v, dict):
        return "[object Object]"
    return str(v)


def truthy(v: Any) -> bool:
    if v is None:
        return False
    if isinstance(v, bool):
        return v
    if is_number(v):
        return not (v == 0 or (isinstance(v, float) and math.isnan(v)))
    if isinstance(v, str):
        return len(v) > 0
    return True


def _strict_equal(a: Any, b: Any) -> bool:
    if is_number(a) and is_number(b):
        return a == b
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if a is None or b is None:
        return a is None and b is None
    if isinstance(a, str) and isinstance(b, str):
        return a == b
    return a is b


def _loose_equal(a: Any, b: Any) -> bool:
    if a is None or b is None:
        return a is None and b is None
    scalar = (str, int, float)
    if isinstance(a, scalar) and isinstance(b, scalar) and type(a) is not type(b):
        if not (isinstance(a, str) and isinstance(b, str)):
            return to_number(a) == to_number(b)
    return _strict_equal(a, b)


def _compare(op: str, a: Any, b: Any) -> bool:
    if isinstance(a, str) and isinstance(b, str):
        x, y = a, b
    else:
        x, y = to_number(a), to_number(b)
        if _is_nan_strict(x) or _is_nan_strict(y):
            return False
    if op == "<":
        return x < y
    if op == "<=":
        return x <= y
    if op == ">":
        return x > y
    return x >= y


def _arith(op: str, a: Any, b: Any) -> Any:
    if op == "+" and (isinstance(a, str) or isinstance(b, str)):
        return to_string(a) + to_string(b)
    if op == "+" and (isinstance(a, (list, dict)) or isinstance(b, (list, dict))):
        return to_string(a) + to_string(b)
    x = NAN if a is None else to_number(a)
    y = NAN if b is None else to_number(b)
    if op == "+":
        r = x + y
    elif op == "-":
        r = x - y
    elif op == "*":
        r = x * y
    elif op == "/":
        if y == 0:
            if x == 0 or math.isnan(x):
                return NAN
            return math.copysign(math.inf, x) * math.copysign(1, y)
        r = x / y
    else:
        if y == 0 or math.isinf(x) or math.isnan(x) or math.isnan(y):
            return NAN
        r = math.fmod(x, y)
    return normalize_number(r)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _numeric(fn: Callable[..., float]) -> Callable[..., Any]:
    def wrapped(*args: Any) -> Any:
        nums = [to_number(a) for a in args]
        if any(isinstance(n, float) and math.isnan(n) for n in nums):
            return NAN
        try:
            return normalize_number(fn(*nums))
        except (ValueError, OverflowError):
            return NAN
    return wrapped


def _round(x: float) -> float:
    if math.isinf(x):
        return x
    return math.floor(x + 0.5)


def _max(*args: float) -> float:
    return max(args) if args else -math.inf


def _min(*args: float) -> float:
    return min(args) if args else math.inf


def _sqrt(x: float) -> float:
    return math.sqrt(x) if x >= 0 else NAN


def _log(x: float) -> float:
    if x == 0:
        return -math.inf
    return math.log(x) if x > 0 else NAN


def _sign(x: float) -> float:
    return (x > 0) - (x < 0)


_FLOAT_PREFIX = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_INT_PREFIX = re.compile(r"^\s*[+-]?\d+")


def _parse_float(v: Any) -> Any:
    m = _FLOAT_PREFIX.match(to_string(v))
    return normalize_number(float(m.group(0))) if m else NAN


def _parse_int(v: Any) -> Any:
    m = _INT_PREFIX.match(to_string(v))
    return int(m.group(0)) if m else NAN


def _is_nan_strict(v: Any) -> bool:
    return isinstance(v, float) and math.isnan(v)


def _is_finite_strict(v: Any) -> bool:
    return is_number(v) and math.isfinite(v)


def _is_integer_strict(v: Any) -> bool:
    return _is_finite_strict(v) and float(v).is_integer()


MATH = Namespace(
    "Math",
    {
        "abs": Builtin("Math.abs", _numeric(abs)),
        "ceil": Builtin("Math.ceil", _numeric(math.ceil)),
        "floor": Builtin("Math.floor", _numeric(math.floor)),
        "round": Builtin("Math.round", _numeric(_round)),
        "trunc": Builtin("Math.trunc", _numeric(math.trunc)),
        "sign": Builtin("Math.sign", _numeric(_sign)),
        "max": Builtin("Math.max", _numeric(_max)),
        "min": Builtin("Math.min", _numeric(_min)),
        "pow": Builtin("Math.pow", _numeric(math.pow)),
        "sqrt": Builtin("Math.sqrt", _numeric(_sqrt)),
        "log": Builtin("Math.log", _numeric(_log)),
        "exp": Builtin("Math.exp", _numeric(math.exp)),
        "PI": math.pi,
        "E": math.e,
    },
)

NUMBER = Namespace(
    "Number",
    {
        "isNaN": Builtin("Number.isNaN", _is_nan_strict),
        "isFinite": Builtin("Number.isFinite", _is_finite_strict),
        "isInteger": Builtin("Number.isInteger", _is_integer_strict),
        "parseFloat": Builtin("Number.parseFloat", _parse_float),
        "parseInt": Builtin("Number.parseInt", _parse_int),
    },
    call=Builtin("Number", lambda v=0: to_number(v)),
)

BASE_HELPERS: Dict[str, Any] = {
    "Math": MATH,
    "Number": NUMBER,
    "String": Builtin("String", lambda v="": to_string(v)),
    "Boolean": Builtin("Boolean", lambda v=None: truthy(v)),
    "isNaN": Builtin("isNaN", lambda v=None: _is_nan_strict(to_number(v))),
    "isFinite": Builtin("isFinite", lambda v=None: _is_finite_strict(to_number(v))),
    "parseFloat": Builtin("parseFloat", _parse_float),
    "parseInt": Builtin("parseInt", _parse_int),
}


def template_helpers(clock: Any = None) -> Dict[str, Any]:
    """Base helpers plus the timestamp and unique-id generators."""
    source = clock or SystemClock()
    helpers = dict(BASE_HELPERS)
    helpers["now"] = Builtin("now", lambda: source.timestamp())
    helpers["uuid"] = Builtin("uuid", new_id)
    return helpers


# ---------------------------------------------------------------------------
# Member access
# ---------------------------------------------------------------------------

def _string_member(s: str, name: str) -> Any:
    if name == "length":
        return len(s)
    methods = {
        "includes": lambda sub="": to_string(sub) in s,
        "startsWith": lambda sub="": s.startswith(to_string(sub)),
        "endsWith": lambda sub="": s.endswith(to_string(sub)),
        "toLowerCase": lambda: s.lower(),
        "toUpperCase": lambda: s.upper(),
        "trim": lambda: s.strip(),
    }
    if name in methods:
        return Builtin(f"String.{name}", methods[name])
    return None


def _list_member(items: list, name: str) -> Any:
    if name == "length":
        return len(items)
    methods = {
        "includes": lambda v=None: any(_strict_equal(x, v) for x in items),
        "indexOf": lambda v=None: next(
            (i for i, x in enumerate(items) if _strict_equal(x, v)), -1
        ),
        "join": lambda sep=",": to_string(sep).join(
            "" if x is None else to_string(x) for x in items
        ),
    }
    if name in methods:
        return Builtin(f"Array.{name}", methods[name])
    return None


def _number_member(n: Any, name: str) -> Any:
    if name == "toFixed":
        def to_fixed(digits: Any = 0) -> str:
            d = to_number(digits)
            d = 0 if _is_nan_strict(d) else d
            if not 0 <= d <= _MAX_FIXED_DIGITS:
                raise EvaluationError(
                    f"toFixed() digits argument must be between 0 and {_MAX_FIXED_DIGITS}"
                )
            d = int(d)
            if not math.isfinite(n):
                return to_string(n)
            return f"{n:.{d}f}"
        return Builtin("Number.toFixed", to_fixed)
    return None


def _member(obj: Any, name: str) -> Any:
    if isinstance(obj, Namespace):
        if name not in obj.members:
            raise EvaluationError(f"{obj.name}.{name} is not available")
        return obj.members[name]
    if obj is None:
        raise EvaluationError(f"Cannot read properties of null (reading '{name}')")
    if isinstance(obj, dict):
        return obj.get(name)
    if isinstance(obj, str):
        return _string_member(obj, name)
    if isinstance(obj, list):
        return _list_member(obj, name)
    if is_number(obj):
        return _number_member(obj, name)
    return None


def _index(obj: Any, key: Any) -> Any:
    if obj is None:
        raise EvaluationError(f"Cannot read properties of null (reading '{to_string(key)}')")
    if isinstance(obj, (list, str)):
        n = to_number(key)
        if is_number(n) and not isinstance(n, float) and 0 <= n < len(obj):
            return obj[n]
        if isinstance(key, str):
            return _member(obj, key)
        return None
    if isinstance(obj, dict):
        return obj.get(to_string(key))
    if isinstance(obj, Namespace):
        return _member(obj, to_string(key))
    return None


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------

class Evaluator:
    """Evaluates a syntax tree against one scope and helper table."""

    def __init__(self, scope: Mapping[str, Any], helpers: Mapping[str, Any]) -> None:
        self.scope = scope
        self.helpers = helpers

    def eval(self, node: Expr) -> Any:
        if isinstance(node, Literal):
            return node.value
        if isinstance(node, Name):
            if node.name in self.scope:
                return self.scope[node.name]
            if node.name in self.helpers:
                return self.helpers[node.name]
            raise EvaluationError(f"{node.name} is not defined")
        if isinstance(node, Member):
            return _member(self.eval(node.obj), node.name)
        if isinstance(node, Index):
            return _index(self.eval(node.obj), self.eval(node.index))
        if isinstance(node, Call):
            return self._call(node)
        if isinstance(node, Unary):
            v = self.eval(node.operand)
            if node.op == "!":
                return not truthy(v)
            n = NAN if v is None else to_number(v)
            return normalize_number(-n) if node.op == "-" else n
        if isinstance(node, Logical):
            left = self.eval(node.left)
            if node.op == "&&":
                return self.eval(node.right) if truthy(left) else left
            return left if truthy(left) else self.eval(node.right)
        if isinstance(node, Binary):
            a = self.eval(node.left)
            b = self.eval(node.right)
            if node.op in ("==", "!="):
                eq = _loose_equal(a, b)
                return eq if node.op == "==" else not eq
            if node.op in ("===", "!=="):
                eq = _strict_equal(a, b)
                return eq if node.op == "===" else not eq
            if node.op in ("<", "<=", ">", ">="):
                return _compare(node.op, a, b)
            return _arith(node.op, a, b)
        if isinstance(node, Conditional):
            if truthy(self.eval(node.test)):
                return self.eval(node.then)
            return self.eval(node.otherwise)
        if isinstance(node, ArrayLiteral):
            return [self.eval(item) for item in node.items]
        raise EvaluationError(f"Unsupported expression node: {type(node).__name__}")

    def _call(self, node: Call) -> Any:
        callee = self.eval(node.func)
        if isinstance(callee, Namespace) and callee.call is not None:
            callee = callee.call
        if not isinstance(callee, Builtin):
            raise EvaluationError(f"{_describe(node.func)} is not a function")
        args = [self.eval(a) for a in node.args]
        try:
            return callee(*args)
        except (TypeError, ValueError, ArithmeticError) as ex:
            raise EvaluationError(f"{callee.name}: {ex}") from ex


def _describe(node: Expr) -> str:
    if isinstance(node, Name):
        return node.name
    if isinstance(node, Member):
        return f"{_describe(node.obj)}.{node.name}"
    return "expression"


def evaluate(
    node: Expr,
    scope: Mapping[str, Any],
    helpers: Optional[Mapping[str, Any]] = None,
) -> Any:
    """
    Evaluate a parsed expression.

    Container results are deep-copied so callers never receive a live
    reference into the scope.

    Raises:
        EvaluationError: On reference errors, non-callable calls, numeric
            overflow, or a result that is a helper rather than a value
    """
    try:
        result = Evaluator(scope, BASE_HELPERS if helpers is None else helpers).eval(node)
    except RecursionError as ex:
        raise EvaluationError("Expression nesting too deep") from ex
    except (ArithmeticError, ValueError) as ex:
        # e.g. integers beyond float range read from the record
        raise EvaluationError(f"Numeric evaluation failed: {ex}") from ex
    if isinstance(result, (Builtin, Namespace)):
        raise EvaluationError(f"Expression produced {result!r}, not a value")
    if isinstance(result, (dict, list)):
        return copy.deepcopy(result)
    return result
