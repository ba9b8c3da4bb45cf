"""
JSON encoding for Data API commands and responses.

Regular JSON loses precision on numbers that don't fit a double. With
``big_numbers=True``, ``Decimal`` values are written verbatim as JSON numbers
and non-integer numbers are parsed back as ``Decimal``. Integers are always
exact in Python.
"""

import json
import uuid
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any


class DataAPIJSONEncoder(json.JSONEncoder):
    """
    JSON encoder for values left over after serialization.

    Handles:
    - Decimal → float
    - UUID → string
    - datetime/date/time → ISO 8601 string
    - set/frozenset → list
    """

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Decimal):
            return float(obj)
        if isinstance(obj, uuid.UUID):
            return str(obj)
        if isinstance(obj, (datetime, date, time)):
            return obj.isoformat()
        if isinstance(obj, (set, frozenset)):
            return list(obj)
        return super().default(obj)


def _extract_decimals(obj: Any, token: str, found: list[str]) -> Any:
    """Replace every finite Decimal by a placeholder string, collecting its text."""
    if isinstance(obj, Decimal):
        if not obj.is_finite():
            return "NaN" if obj.is_nan() else ("Infinity" if obj > 0 else "-Infinity")
        found.append(str(obj))
        return f"{token}{len(found) - 1}"
    if isinstance(obj, dict):
        return {k: _extract_decimals(v, token, found) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_extract_decimals(v, token, found) for v in obj]
    return obj


def dumps(obj: Any, big_numbers: bool = False) -> str:
    """
    Encode a command body.

    Args:
        obj: The (already serialized) command
        big_numbers: Write ``Decimal`` values as exact JSON numbers

    Returns:
        The JSON text
    """
    if not big_numbers:
        return json.dumps(obj, cls=DataAPIJSONEncoder, separators=(",", ":"))

    token = f"__bignum_{uuid.uuid4().hex}_"
    found: list[str] = []
    text = json.dumps(_extract_decimals(obj, token, found), cls=DataAPIJSONEncoder, separators=(",", ":"))

    for i, number in enumerate(found):
        text = text.replace(f'"{token}{i}"', number, 1)
    return text


def loads(text: str | bytes, big_numbers: bool = False) -> Any:
    """
    Decode a response body.

    Args:
        text: The JSON text
        big_numbers: Parse non-integer numbers as ``Decimal``

    Returns:
        The decoded value
    """
    if big_numbers:
        return json.loads(text, parse_float=Decimal)
    return json.loads(text)
