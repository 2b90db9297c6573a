"""
Key paths into the nested record tree.

A KeyPath is an ordered tuple of string segments parsed from dotted text
("applicant.income.monthly"). The wildcard "*" addresses the whole record.
All record reads and writes made by the engine go through get() and set().
"""

from dataclasses import dataclass
from typing import Any, Dict, Tuple

from .errors import PathError

WILDCARD = "*"


class _Missing:
    """Sentinel for a path that does not resolve to a value."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


def _index(seg: str, seq: list) -> int:
    if seg.isdigit() and int(seg) < len(seq):
        return int(seg)
    return -1


@dataclass(frozen=True)
class KeyPath:
    """
    Immutable path into a JSON-shaped record.

    Fields:
        segments: Path segments; an empty tuple is the wildcard (whole record)
    """
    segments: Tuple[str, ...]

    @classmethod
    def parse(cls, text: Any) -> "KeyPath":
        """
        Parse dotted path text.

        Raises:
            PathError: If text is not a non-empty string or has an empty segment
        """
        if not isinstance(text, str) or not text:
            raise PathError("Invalid or missing path")
        if text == WILDCARD:
            return cls(())
        parts = tuple(text.split("."))
        if any(p == "" for p in parts):
            raise PathError(f"Empty segment in path: {text!r}")
        return cls(parts)

    @property
    def is_wildcard(self) -> bool:
        return not self.segments

    @property
    def leaf(self) -> str:
        """Last segment, or the wildcard token for the whole record."""
        return self.segments[-1] if self.segments else WILDCARD

    def __str__(self) -> str:
        return ".".join(self.segments) if self.segments else WILDCARD

    def get(self, root: Any) -> Any:
        """
        Resolve the path against root.

        Returns:
            The value, or MISSING when any segment is absent
        """
        node = root
        for seg in self.segments:
            if isinstance(node, dict):
                if seg not in node:
                    return MISSING
                node = node[seg]
            elif isinstance(node, list):
                i = _index(seg, node)
                if i < 0:
                    return MISSING
                node = node[i]
            else:
                return MISSING
        return node

    def set(self, root: Dict[str, Any], value: Any) -> None:
        """
        Write value at the path, creating intermediate mappings as needed.

        Absent or null intermediates are replaced with empty mappings. Scalar
        intermediates are never overwritten.

        Raises:
            PathError: If the path runs through a scalar, or the wildcard is
                assigned a non-mapping value
        """
        if self.is_wildcard:
            if not isinstance(value, dict):
                raise PathError("Whole-record assignment requires a mapping")
            snapshot = dict(value)
            root.clear()
            root.update(snapshot)
            return

        node: Any = root
        for seg in self.segments[:-1]:
            if isinstance(node, dict):
                child = node.get(seg)
                if child is None:
                    child = {}
                    node[seg] = child
                node = child
            elif isinstance(node, list) and _index(seg, node) >= 0:
                node = node[_index(seg, node)]
            else:
                raise PathError(f"Cannot descend into {type(node).__name__} at '{seg}' of '{self}'")

        last = self.segments[-1]
        if isinstance(node, dict):
            node[last] = value
        elif isinstance(node, list) and _index(last, node) >= 0:
            node[_index(last, node)] = value
        else:
            raise PathError(f"Cannot assign into {type(node).__name__} at '{last}' of '{self}'")


def get_path(root: Any, text: str) -> Any:
    """Resolve dotted path text; missing paths resolve to MISSING."""
    return KeyPath.parse(text).get(root)


def set_path(root: Dict[str, Any], text: str, value: Any) -> None:
    """Write value at dotted path text."""
    KeyPath.parse(text).set(root, value)
