"""
Key transformers.

Rename document keys between the application's naming convention and the
one stored in the database (e.g. ``camelCase`` <-> ``snake_case``).
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

_UPPER = re.compile(r"[A-Z]")
_SNAKE = re.compile(r"_([a-z])")


class KeyTransformer(ABC):
    """
    Base class for key transformers.

    Top-level keys are always transformed; nested containers only when
    ``transform_nested(path)`` returns True for the path leading to them.
    """

    @abstractmethod
    def serialize_key(self, key: str, path: list[str | int]) -> str: ...

    @abstractmethod
    def deserialize_key(self, key: str, path: list[str | int]) -> str: ...

    @abstractmethod
    def transform_nested(self, path: list[str | int]) -> bool: ...

    def serialize(self, obj: Any) -> Any:
        return self._transform(obj, [], self.serialize_key)

    def deserialize(self, obj: Any) -> Any:
        return self._transform(obj, [], self.deserialize_key)

    def _transform(self, obj: Any, path: list[str | int], fn: Callable[[str, list[str | int]], str]) -> Any:
        if isinstance(obj, dict):
            items: Any = obj.items()
        elif isinstance(obj, list):
            items = enumerate(obj)
        else:
            return obj

        out: Any = {} if isinstance(obj, dict) else []
        for key, value in items:
            path.append(key)
            new_key = fn(key, path) if isinstance(key, str) else key
            if isinstance(value, (dict, list)) and self.transform_nested(path):
                value = self._transform(value, path, fn)
            path.pop()

            if isinstance(out, dict):
                out[new_key] = value
            else:
                out.append(value)
        return out


class Camel2SnakeCase(KeyTransformer):
    """
    ``camelCase`` in Python, ``snake_case`` in the database.

    Args:
        except_id: Leave ``_id`` untouched (default True)
        transform_nested: Predicate on the path deciding whether a nested
            container's keys are transformed too (default: never)
    """

    def __init__(
        self,
        except_id: bool = True,
        transform_nested: Callable[[list[str | int]], bool] | None = None,
    ):
        self._except_id = except_id
        self._transform_nested = transform_nested

    def transform_nested(self, path: list[str | int]) -> bool:
        return bool(self._transform_nested and self._transform_nested(path))

    def serialize_key(self, key: str, path: list[str | int]) -> str:
        if not key or (self._except_id and key == "_id"):
            return key
        return _UPPER.sub(lambda m: f"_{m.group().lower()}", key)

    def deserialize_key(self, key: str, path: list[str | int]) -> str:
        if not key or (self._except_id and key == "_id"):
            return key
        return _SNAKE.sub(lambda m: m.group(1).upper(), key)
