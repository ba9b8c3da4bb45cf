"""
Helpers for ``distinct``, which is computed client-side from a ``find``.

A key is a dotted path such as ``"tags"`` or ``"items.0.sku"``. Arrays met
along the path are walked into element by element unless the next segment
is a numeric index, and an array found at the end of the path contributes
its elements rather than itself.
"""

from __future__ import annotations

import json
from collections.abc import Hashable
from itertools import takewhile
from typing import Any


def parse_distinct_key(key: str) -> list[str]:
    """
    Split a distinct key into path segments.

    Raises:
        ValueError: If the key or one of its segments is empty
    """
    segments = key.split(".")
    if not key or any(not segment for segment in segments):
        raise ValueError(f"Invalid distinct key {key!r}")
    return segments


def projection_for(segments: list[str]) -> str:
    """Projection path for a key: everything before its first numeric segment."""
    return ".".join(takewhile(lambda segment: not segment.isdigit(), segments))


def extract_values(doc: Any, segments: list[str]) -> list[Any]:
    """Every value found at ``segments`` in ``doc``."""
    values: list[Any] = []

    def walk(node: Any, i: int) -> None:
        if i == len(segments):
            if isinstance(node, list):
                values.extend(node)
            else:
                values.append(node)
            return

        segment = segments[i]
        if isinstance(node, dict):
            if segment in node:
                walk(node[segment], i + 1)
        elif isinstance(node, list):
            if segment.isdigit():
                if int(segment) < len(node):
                    walk(node[int(segment)], i + 1)
            else:
                for item in node:
                    walk(item, i)

    walk(doc, 0)
    return values


def identity_key(value: Any) -> Any:
    """Key under which two values count as the same distinct value."""
    if isinstance(value, Hashable):
        # keeps 1, 1.0 and True apart
        return type(value), value
    return "json", json.dumps(value, sort_keys=True, default=str)
