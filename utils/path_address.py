"""
Path addressing for nested JSON-like data.

Supports dotted field access with an optional single bracketed index per
segment, e.g. ``choices[0].message.content``. Mappings and lists are handled
uniformly: a numeric key addresses a list slot, an index on a mapping
addresses the key of the same digits.
"""
import re
from dataclasses import dataclass
from typing import Any, List

from utils.exceptions import PathSyntaxError

SEGMENT_PATTERN = re.compile(r'^(?P<key>[^\[\]]*)(?:\[(?P<index>[0-9]+)\])?$')
DIGITS_PATTERN = re.compile(r'[0-9]+')


class _Absent:
    """Sentinel for a path that does not resolve to a value."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"


ABSENT = _Absent()


@dataclass(frozen=True)
class PathStep:
    """One traversal step: a field name or a list index."""
    key: str | None = None
    index: int | None = None

    @property
    def is_index(self) -> bool:
        return self.index is not None


class PathAddress:
    """Get and set values in nested mappings/lists by path expression."""

    @staticmethod
    def parse(path: str) -> List[PathStep]:
        """
        Parse a path expression into traversal steps.

        Args:
            path: Path expression such as "choices[0].message.content"

        Returns:
            List of PathStep

        Raises:
            PathSyntaxError: If the path is empty or malformed
        """
        if not isinstance(path, str) or not path.strip():
            raise PathSyntaxError("Path must be a non-empty string")

        steps: List[PathStep] = []
        for segment in path.strip().split('.'):
            match = SEGMENT_PATTERN.match(segment)
            if not match or not segment:
                raise PathSyntaxError(f"Invalid path segment '{segment}' in '{path}'")

            key = match.group('key')
            index = match.group('index')
            if key:
                steps.append(PathStep(key=key))
            if index is not None:
                steps.append(PathStep(index=int(index)))

        return steps

    @staticmethod
    def is_valid(path: str) -> bool:
        """Check path syntax without raising."""
        try:
            PathAddress.parse(path)
            return True
        except PathSyntaxError:
            return False

    @staticmethod
    def _slot(step: PathStep):
        """Resolve a step to a list index, or None when it is a plain field name."""
        if step.is_index:
            return step.index
        if DIGITS_PATTERN.fullmatch(step.key):
            return int(step.key)
        return None

    @staticmethod
    def _mapping_key(step: PathStep) -> str:
        return step.key if not step.is_index else str(step.index)

    @staticmethod
    def get(root: Any, path: str, default: Any = ABSENT) -> Any:
        """
        Get the value at a path.

        Missing keys, out-of-range indices and shape mismatches are not errors:
        the default (ABSENT) is returned. A stored None is returned as None.
        """
        current = root
        for step in PathAddress.parse(path):
            if isinstance(current, dict):
                key = PathAddress._mapping_key(step)
                if key not in current:
                    return default
                current = current[key]
            elif isinstance(current, list):
                slot = PathAddress._slot(step)
                if slot is None or slot >= len(current):
                    return default
                current = current[slot]
            else:
                return default

        return current

    @staticmethod
    def has(root: Any, path: str) -> bool:
        """Check whether a path resolves, including to None."""
        return PathAddress.get(root, path) is not ABSENT

    @staticmethod
    def _fits(value: Any, step: PathStep) -> bool:
        """Check whether an existing value can be traversed by the next step."""
        if isinstance(value, dict):
            return True
        if isinstance(value, list):
            return PathAddress._slot(step) is not None
        return False

    @staticmethod
    def _container_for(step: PathStep) -> Any:
        return [] if step.is_index else {}

    @staticmethod
    def _assign(container: Any, step: PathStep, value: Any, path: str) -> None:
        if isinstance(container, dict):
            container[PathAddress._mapping_key(step)] = value
            return

        slot = PathAddress._slot(step)
        if slot is None:
            raise PathSyntaxError(f"Cannot set field '{step.key}' on a list in '{path}'")

        while len(container) <= slot:
            container.append({})
        container[slot] = value

    @staticmethod
    def _child(container: Any, step: PathStep) -> Any:
        if isinstance(container, dict):
            return container.get(PathAddress._mapping_key(step), ABSENT)
        return container[PathAddress._slot(step)] if PathAddress._slot(step) < len(container) else ABSENT

    @staticmethod
    def set(root: Any, path: str, value: Any) -> Any:
        """
        Set the value at a path, in place.

        Intermediate mappings and lists are created on demand. Lists grow to
        the needed length with empty mappings filling the gaps. Scalars on the
        way are replaced by containers.

        Returns:
            The same root object
        """
        steps = PathAddress.parse(path)
        if not isinstance(root, (dict, list)):
            raise PathSyntaxError(f"Cannot set '{path}' on a {type(root).__name__}")
        if isinstance(root, list) and PathAddress._slot(steps[0]) is None:
            raise PathSyntaxError(f"Cannot set field '{steps[0].key}' on a list in '{path}'")

        current = root
        for step, next_step in zip(steps, steps[1:]):
            child = PathAddress._child(current, step)
            if child is ABSENT or not PathAddress._fits(child, next_step):
                child = PathAddress._container_for(next_step)
                PathAddress._assign(current, step, child, path)
            current = child

        PathAddress._assign(current, steps[-1], value, path)
        return root
