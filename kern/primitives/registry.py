"""
Primitive registry: operation name -> primitive function.

Usage:
    registry = PrimitiveRegistry.default()
    registry.register("MY_PRIMITIVE", my_fn)
    fn = registry.get("STATE_MUTATOR")
"""

from typing import Any, Callable, Dict, List, Optional

from ..core.context import EngineContext
from .output import PrimitiveOutput

# Primitive signature: (combined_input, engine_context) -> PrimitiveOutput
Primitive = Callable[[Dict[str, Any], EngineContext], PrimitiveOutput]


class PrimitiveRegistry:
    """Fixed mapping from operation name to primitive function."""

    def __init__(self) -> None:
        self._primitives: Dict[str, Primitive] = {}

    def register(self, name: str, primitive: Primitive) -> None:
        """
        Register a primitive under an operation name.

        Args:
            name: Operation name referenced by Step.primitive
            primitive: Function (combined_input, engine_context) -> PrimitiveOutput
        """
        self._primitives[name] = primitive

    def get(self, name: str) -> Optional[Primitive]:
        return self._primitives.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._primitives

    def names(self) -> List[str]:
        return sorted(self._primitives)

    @staticmethod
    def default() -> "PrimitiveRegistry":
        from . import library

        registry = PrimitiveRegistry()
        registry.register(library.CONDITION_EVALUATOR, library.condition_evaluator)
        registry.register(library.EXPRESSION_EVALUATOR, library.expression_evaluator)
        registry.register(library.STATE_MUTATOR, library.state_mutator)
        registry.register(library.COMPOSITE_SCORER, library.composite_scorer)
        registry.register(library.RULE_APPLICATOR, library.rule_applicator)
        return registry
