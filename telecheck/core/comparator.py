"""Structural comparison of captured payloads against fixtures.

Messages are compared in their JSON form. Volatile fields such as
timestamps and intervals are removed from both sides before comparing,
which matches how the protobuf JSON mapping renders an unset field.

Field paths are dotted JSON names. Repeated fields are traversed
implicitly, so ``points.interval`` masks the interval of every point.
A leading ``**.`` masks the field at any depth (``**.timestamp``).
"""

import difflib
import json
from collections.abc import Iterable, Mapping
from typing import Any

from .models import MismatchReport, thaw

ANY_DEPTH = "**"


def _mask_path(node: Any, parts: list[str]) -> None:
    if isinstance(node, list):
        for item in node:
            _mask_path(item, parts)
        return
    if not isinstance(node, dict) or not parts:
        return
    head, rest = parts[0], parts[1:]
    if not rest:
        node.pop(head, None)
        return
    if head in node:
        _mask_path(node[head], rest)


def _mask_everywhere(node: Any, name: str) -> None:
    if isinstance(node, list):
        for item in node:
            _mask_everywhere(item, name)
    elif isinstance(node, dict):
        node.pop(name, None)
        for value in node.values():
            _mask_everywhere(value, name)


def mask_fields(message: Mapping[str, Any], paths: Iterable[str]) -> dict[str, Any]:
    """Return a mutable copy of ``message`` with the given fields removed.

    Args:
        message: Frozen or plain JSON message.
        paths: Dotted field paths to remove.

    Returns:
        A new plain dict; the input is never modified.
    """
    masked = thaw(message)
    for path in paths:
        parts = path.split(".")
        if parts[0] == ANY_DEPTH:
            if len(parts) != 2:
                raise ValueError(f"'{ANY_DEPTH}' paths take exactly one field name: {path}")
            _mask_everywhere(masked, parts[1])
        else:
            _mask_path(masked, parts)
    return masked


def render_message(message: Any) -> str:
    """Render a JSON message for humans, with stable key order."""
    return json.dumps(thaw(message), indent=2, sort_keys=True, default=str)


def compare_messages(
    actual: Mapping[str, Any],
    expected: Mapping[str, Any],
    *,
    ignore: Iterable[str] = (),
    expectation: str | None = None,
    summary: str = "message is not expected",
) -> MismatchReport | None:
    """Compare two messages after masking volatile fields on both sides.

    Args:
        actual: The captured payload (or part of it).
        expected: The fixture message.
        ignore: Field paths to mask before comparing.
        expectation: Name of the expectation, carried into the report.
        summary: Headline used in the report.

    Returns:
        None when the masked messages are equal, otherwise a
        MismatchReport rendering both sides and their difference.
    """
    ignore = tuple(ignore)
    got = mask_fields(actual, ignore)
    want = mask_fields(expected, ignore)
    if got == want:
        return None

    got_text = render_message(got)
    want_text = render_message(want)
    diff = difflib.unified_diff(
        want_text.splitlines(),
        got_text.splitlines(),
        fromfile="want",
        tofile="got",
        lineterm="",
    )
    return MismatchReport(
        expectation=expectation,
        summary=summary,
        actual=got_text,
        expected=want_text,
        diff=tuple(diff),
    )
