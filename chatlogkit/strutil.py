"""Small string and number helpers."""

from __future__ import annotations

import re
from typing import Any

__all__ = [
    "is_normal_string",
    "must_any_to_int",
    "is_numeric",
    "split_int64_to_two_int32",
    "str_to_list",
]

_INT_RE = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def is_normal_string(data: bytes) -> bool:
    """Return whether ``data`` is valid UTF-8 made only of printable characters."""
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        return False
    return text.isprintable()


def _display(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return str(value)


def must_any_to_int(value: Any) -> int:
    """Convert the printed form of ``value`` to an int, or 0 if it is not one."""
    text = _display(value)
    if not _INT_RE.fullmatch(text):
        return 0
    number = int(text)
    if not _INT64_MIN <= number <= _INT64_MAX:
        return 0
    return number


def is_numeric(text: str) -> bool:
    """Return whether ``text`` is non-empty and made only of decimal digits."""
    return text.isdecimal()


def split_int64_to_two_int32(value: int) -> tuple[int, int]:
    """Split a 64-bit integer into its low 32 bits and the rest."""
    return value & 0xFFFFFFFF, value >> 32


def str_to_list(text: str, sep: str) -> list[str]:
    """Split ``text`` on ``sep``, trimming items and dropping blanks and repeats."""
    if not text:
        return []
    pieces = list(text) if sep == "" else text.split(sep)
    stripped = (piece.strip() for piece in pieces)
    return list(dict.fromkeys(piece for piece in stripped if piece))