"""Explicit JSON-path evaluation for request and response payloads.

Supports the subset used by scenarios: a ``$`` root followed by dotted
names (``.amount``), quoted member access (``['id']``) and list indices
(``[0]``, ``[-1]``). Setting a value parses the path, locates the parent
container and assigns to the terminal key or index.
"""

from __future__ import annotations

import random
import re
from typing import Any, Iterable

from scenariokit.constants import RANDOM_PLACEHOLDER
from scenariokit.exceptions import JsonPathError

Token = str | int

_TOKEN_RE = re.compile(
    r"""
    \.(?P<name>[A-Za-z_$][\w$-]*)
    | \[\s*(?:
        (?P<index>-?\d+)
        | '(?P<single>(?:[^'\\]|\\.)*)'
        | "(?P<double>(?:[^"\\]|\\.)*)"
    )\s*\]
    """,
    re.VERBOSE,
)
_ESCAPE_RE = re.compile(r"\\(.)")
_NUMBER_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")


def parse_path(path: str) -> list[Token]:
    """Split a JSON path into member names and list indices.

    Parameters
    ----------
    path : str
        Path such as ``$['id']`` or ``$.purchase_units[0].amount.value``

    Returns
    -------
    list[str | int]
        Tokens after the root, in order

    Raises
    ------
    JsonPathError
        If the path does not start at ``$`` or contains unsupported syntax
    """
    text = path.strip()
    if not text.startswith("$"):
        raise JsonPathError(f"JSON path must start with '$': {path!r}")

    tokens: list[Token] = []
    position = 1

    while position < len(text):
        match = _TOKEN_RE.match(text, position)
        if match is None:
            raise JsonPathError(
                f"Malformed JSON path {path!r} at position {position}"
            )

        if match.group("name") is not None:
            tokens.append(match.group("name"))
        elif match.group("index") is not None:
            tokens.append(int(match.group("index")))
        else:
            quoted = match.group("single")
            if quoted is None:
                quoted = match.group("double")
            tokens.append(_ESCAPE_RE.sub(r"\1", quoted))

        position = match.end()

    return tokens


def _step(container: Any, token: Token, path: str) -> Any:
    if isinstance(token, int):
        if not isinstance(container, list):
            raise JsonPathError(f"Index [{token}] in {path!r} applied to a non-list")
        try:
            return container[token]
        except IndexError as e:
            raise JsonPathError(f"Index [{token}] out of range in {path!r}") from e

    if not isinstance(container, dict):
        raise JsonPathError(f"Member '{token}' in {path!r} applied to a non-object")
    if token not in container:
        raise JsonPathError(f"Member '{token}' not found for {path!r}")
    return container[token]


def get_value(document: Any, path: str) -> Any:
    """Return the value at ``path``.

    Raises
    ------
    JsonPathError
        If the path is malformed or does not resolve
    """
    current = document
    for token in parse_path(path):
        current = _step(current, token, path)
    return current


def set_value(document: Any, path: str, value: Any) -> None:
    """Assign ``value`` at ``path`` inside ``document`` in place.

    The parent container must exist. A missing terminal member of an object
    is created; a list index must already be in range.

    Raises
    ------
    JsonPathError
        If the path is malformed, targets the root or its parent does not
        resolve
    """
    tokens = parse_path(path)
    if not tokens:
        raise JsonPathError("Cannot replace the document root")

    parent = document
    for token in tokens[:-1]:
        parent = _step(parent, token, path)

    terminal = tokens[-1]
    if isinstance(terminal, int):
        if not isinstance(parent, list):
            raise JsonPathError(f"Index [{terminal}] in {path!r} applied to a non-list")
        if not -len(parent) <= terminal < len(parent):
            raise JsonPathError(f"Index [{terminal}] out of range in {path!r}")
        parent[terminal] = value
        return

    if not isinstance(parent, dict):
        raise JsonPathError(f"Member '{terminal}' in {path!r} applied to a non-object")
    parent[terminal] = value


def parse_smart_value(value: str) -> Any:
    """Coerce a table cell into a JSON value.

    ``true``/``false``/``null`` (any case) become booleans and None,
    numeric-looking strings become int or float, anything else stays a
    string.
    """
    trimmed = value.strip()
    lowered = trimmed.lower()

    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if lowered == "null":
        return None
    if _NUMBER_RE.match(trimmed):
        if re.fullmatch(r"[+-]?\d+", trimmed):
            return int(trimmed)
        return float(trimmed)
    return trimmed


def substitute_random(value: str, rng: random.Random | None = None) -> str:
    """Replace every ``<random>`` placeholder with one 3-digit number."""
    if RANDOM_PLACEHOLDER not in value:
        return value
    number = (rng or random).randint(100, 999)
    return value.replace(RANDOM_PLACEHOLDER, str(number))


def apply_updates(
    document: Any,
    updates: Iterable[tuple[str, str]],
    rng: random.Random | None = None,
) -> dict[str, Any]:
    """Apply ``(path, raw value)`` updates to a payload.

    Each raw value has its placeholders substituted and is coerced with
    :func:`parse_smart_value` before assignment.

    Returns
    -------
    dict[str, Any]
        Path to assigned value, in update order
    """
    applied: dict[str, Any] = {}
    for path, raw in updates:
        final = parse_smart_value(substitute_random(raw.strip(), rng))
        set_value(document, path, final)
        applied[path] = final
    return applied
