"""Wire format helpers."""

from .json_codec import DataAPIJSONEncoder, dumps, loads

__all__ = ["DataAPIJSONEncoder", "dumps", "loads"]
