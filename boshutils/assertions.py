"""Assertion helpers for JSON serialisations and file paths."""

from __future__ import annotations

import dataclasses
import json
import os
from typing import Any

_WINDOWS = os.name == "nt"

_JSON_ESCAPES = (
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("&", "\\u0026"),
    ("\u2028", "\\u2028"),
    ("\u2029", "\\u2029"),
)


def _json_default(obj: Any) -> Any:
    to_json = getattr(obj, "to_json", None)
    if callable(to_json):
        return json.loads(to_json())
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _dumps(obj: Any) -> str:
    text = json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=_json_default,
    )
    for char, escape in _JSON_ESCAPES:
        text = text.replace(char, escape)
    return text


def matches_json_string(obj: Any, expected_json: str) -> str:
    """Assert that ``obj`` serialises exactly to ``expected_json``; return the serialisation."""
    actual = _dumps(obj)
    if actual != expected_json:
        raise AssertionError(f"Expected JSON\n\t{expected_json}\nbut got\n\t{actual}")
    return actual


def matches_json_map(obj: Any, expected: dict[str, Any]) -> str:
    """Assert that ``obj`` serialises the same way as the mapping ``expected``."""
    return matches_json_string(obj, _dumps(expected))


def lacks_json_key(obj: Any, key: str) -> list[str]:
    """Assert that ``obj`` serialises to a JSON object without ``key``; return its keys."""
    loaded = json.loads(_dumps(obj))
    if not isinstance(loaded, dict):
        raise AssertionError(f"Expected a JSON object but got {type(loaded).__name__}")
    keys = list(loaded)
    if key in loaded:
        raise AssertionError(
            f'Expected object with keys "{", ".join(keys)}" to not have key "{key}"'
        )
    return keys


def _is_slash(char: str) -> bool:
    return char in "\\/"


class MatchPath(str):
    """A file path that matches equivalent spellings of itself.

    On Windows, paths starting with a slash are made absolute on the volume
    of the current working directory before comparing.
    """

    @staticmethod
    def _is_abs(path: str) -> bool:
        return os.path.isabs(path) or (_WINDOWS and bool(path) and _is_slash(path[0]))

    def _clean_path(self, path: str) -> str:
        if not _WINDOWS or not self._is_abs(path):
            return path
        try:
            return os.path.abspath(path)
        except (OSError, ValueError):
            return path

    def match(self, actual: object) -> bool:
        """Return whether ``actual`` names the same path."""
        if not isinstance(actual, str):
            raise TypeError(f"MatchPath: expects a string got: {type(actual).__name__}")
        expected = str(self)
        if actual == expected or os.path.normpath(actual) == os.path.normpath(expected):
            return True
        return self._clean_path(actual) == self._clean_path(expected)

    def _message(self, actual: object, verb: str) -> str:
        expected = str(self)
        if _WINDOWS and isinstance(actual, str):
            return (
                f"Expected\n\t{actual}\n\t{self._clean_path(actual)} (clean)\n"
                f"{verb} file\n\t{expected}\n\t{self._clean_path(expected)} (clean)"
            )
        return f"Expected\n\t{actual}\n{verb} file\n\t{expected}"

    def failure_message(self, actual: object) -> str:
        return self._message(actual, "to match")

    def negated_failure_message(self, actual: object) -> str:
        return self._message(actual, "not to match")