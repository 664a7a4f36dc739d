"""Strict parsers for option tokens shared by the CLI and the config file."""
from __future__ import annotations

from typing import List

from .errors import InvalidConfigValue

_FALSE_TOKENS = frozenset({"0", "false", "no"})
_TRUE_TOKENS = frozenset({"1", "true", "yes"})


def parse_bool(option: str, token: str) -> bool:
    """Map ``token`` onto a boolean.

    Matching is exact and case-sensitive; anything outside the two token
    sets is rejected rather than coerced.
    """

    if token in _TRUE_TOKENS:
        return True
    if token in _FALSE_TOKENS:
        return False
    raise InvalidConfigValue(option, token, "expected one of 0, false, no, 1, true, yes")


def split_list(value: str) -> List[str]:
    """Split a comma delimited option value.

    Segments are not trimmed and empty segments are kept as empty strings,
    so ``"a,,b"`` gives ``["a", "", "b"]``. The empty string itself is the
    empty list.
    """

    if value == "":
        return []
    return value.split(",")
