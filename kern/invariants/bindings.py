"""
Bound (named) invariant checks.

The binding table comes from external configuration, usually nested at
contracts.primitiveBindings, and maps a primitive name to the identifiers of
the checks to run after each of its invocations. The table is untrusted:
malformed entries are dropped and unknown check identifiers pass.
"""

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

# Check signature: rendered output mapping -> passed
Check = Callable[[Dict[str, Any]], bool]


def state_progress(output: Dict[str, Any]) -> bool:
    """Fails when the operation reported failure."""
    return output.get("success") is not False


def consistency_check(output: Dict[str, Any]) -> bool:
    """Fails when no new value was produced."""
    return "newValue" in output


class CheckRegistry:
    """
    Registry of named check predicates.

    Usage:
        checks = CheckRegistry.default()
        checks.register("hasScore", lambda out: "normalized_score" in out)
        passed = checks.evaluate("stateProgress", output)
    """

    def __init__(self) -> None:
        self._checks: Dict[str, Check] = {}

    def register(self, name: str, check: Check) -> None:
        self._checks[name] = check

    def known(self, name: str) -> bool:
        return name in self._checks

    def evaluate(self, name: str, output: Dict[str, Any]) -> bool:
        check = self._checks.get(name)
        if check is None:
            return True
        return bool(check(output))

    @staticmethod
    def default() -> "CheckRegistry":
        registry = CheckRegistry()
        registry.register("stateProgress", state_progress)
        registry.register("consistencyCheck", consistency_check)
        return registry


class InvariantBindings(BaseModel):
    """Primitive name -> ordered check identifiers."""

    model_config = ConfigDict(frozen=True)

    primitive_bindings: Dict[str, List[str]] = Field(default_factory=dict)

    @field_validator("primitive_bindings", mode="before")
    @classmethod
    def _drop_malformed(cls, value: Any) -> Dict[str, List[str]]:
        if not isinstance(value, dict):
            if value is not None:
                logger.warning("Ignoring primitive bindings of type %s", type(value).__name__)
            return {}
        clean: Dict[str, List[str]] = {}
        for primitive, checks in value.items():
            if not isinstance(primitive, str) or not isinstance(checks, list):
                logger.warning("Ignoring malformed binding for %r", primitive)
                continue
            clean[primitive] = [c for c in checks if isinstance(c, str)]
        return clean

    def checks_for(self, primitive: str) -> List[str]:
        return list(self.primitive_bindings.get(primitive, []))


def parse_bindings(doc: Optional[Dict[str, Any]]) -> InvariantBindings:
    """
    Extract the binding table from a binding (or plan) document.

    Looks for contracts.primitiveBindings, then a top-level
    primitiveBindings, then treats the document itself as the table.
    """
    if not isinstance(doc, dict):
        return InvariantBindings()
    contracts = doc.get("contracts")
    if isinstance(contracts, dict) and "primitiveBindings" in contracts:
        return InvariantBindings(primitive_bindings=contracts["primitiveBindings"])
    if "primitiveBindings" in doc:
        return InvariantBindings(primitive_bindings=doc["primitiveBindings"])
    if "contracts" in doc:
        return InvariantBindings()
    return InvariantBindings(primitive_bindings=doc)


def load_bindings(path: Union[str, Path]) -> InvariantBindings:
    """Read and parse a JSON binding document."""
    with open(path, "r", encoding="utf-8") as f:
        doc = json.load(f)
    return parse_bindings(doc)
