"""Paginated cursors over ``find`` results."""

from .abstract_cursor import AbstractCursor, CursorState
from .find_cursor import FindCursor

__all__ = ["AbstractCursor", "CursorState", "FindCursor"]
