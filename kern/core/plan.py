"""
Plan model and plan document loader.

A plan is produced by an external rule converter and consumed read-only.
The document is either {"transformation_pipeline": [...], ...} or the bare
list of steps.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import PlanError


class Step(BaseModel):
    """One declarative unit of work."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    primitive: str
    input_fields: List[str] = Field(default_factory=list)
    output_fields: List[str] = Field(default_factory=list)
    params: Dict[str, Any] = Field(default_factory=dict)


class Plan(BaseModel):
    """
    Ordered, immutable sequence of steps.

    metadata and contracts are carried through from the converter's output
    untouched; contracts may embed the invariant binding table.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    steps: List[Step] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    contracts: Dict[str, Any] = Field(default_factory=dict)


def parse_plan(doc: Union[Dict[str, Any], List[Any]]) -> Plan:
    """
    Build a Plan from a decoded plan document.

    Raises:
        PlanError: If the document has no step list or a step is malformed
    """
    if isinstance(doc, list):
        raw_steps: Any = doc
        extra: Dict[str, Any] = {}
    elif isinstance(doc, dict) and "transformation_pipeline" in doc:
        raw_steps = doc["transformation_pipeline"]
        extra = {
            "metadata": doc.get("metadata") or {},
            "contracts": doc.get("contracts") or {},
        }
    else:
        raise PlanError("Plan document must be a step list or carry 'transformation_pipeline'")

    if not isinstance(raw_steps, list):
        raise PlanError("'transformation_pipeline' must be a list")

    try:
        return Plan(steps=raw_steps, **extra)
    except ValidationError as ex:
        raise PlanError(f"Invalid plan: {ex}") from ex


def load_plan(path: Union[str, Path]) -> Plan:
    """Read and parse a JSON plan document."""
    with open(path, "r", encoding="utf-8") as f:
        doc = json.load(f)
    return parse_plan(doc)
