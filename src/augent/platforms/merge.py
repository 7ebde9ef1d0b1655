"""Combine incoming resource content with what already sits at a target path."""

from __future__ import annotations

import json
from typing import Any

from augent.constants import COMPOSITE_SEPARATOR
from augent.core.exceptions import MergeFailedError
from augent.platforms.registry import MergeStrategy


def merge_content(existing: str, incoming: str, strategy: MergeStrategy) -> str:
    """Merge ``incoming`` into ``existing`` using ``strategy``.

    Structured strategies accept JSON with ``//`` and ``/* */`` comments and
    trailing commas; the result is always plain, indented JSON.
    """
    if strategy is MergeStrategy.REPLACE:
        return incoming
    if strategy is MergeStrategy.COMPOSITE:
        return merge_composite(existing, incoming)

    existing_data = _parse_json_object(existing, label="existing")
    incoming_data = _parse_json_object(incoming, label="incoming")
    if strategy is MergeStrategy.SHALLOW:
        merged = {**existing_data, **incoming_data}
    else:
        merged = merge_deep(existing_data, incoming_data)
    return json.dumps(merged, indent=2, ensure_ascii=False) + "\n"


def merge_composite(existing: str, incoming: str) -> str:
    """Append ``incoming`` below a separator unless it is already present."""
    current = existing.strip()
    addition = incoming.strip()
    if not current:
        return f"{addition}\n" if addition else ""
    if not addition or addition in current:
        return f"{current}\n"
    return f"{current}\n\n{COMPOSITE_SEPARATOR}\n\n{addition}\n"


def merge_deep(existing: Any, incoming: Any) -> Any:
    if isinstance(existing, dict) and isinstance(incoming, dict):
        merged = dict(existing)
        for key, value in incoming.items():
            merged[key] = merge_deep(merged[key], value) if key in merged else value
        return merged
    if isinstance(existing, list) and isinstance(incoming, list):
        return existing + [item for item in incoming if item not in existing]
    return incoming


def _parse_json_object(text: str, *, label: str) -> dict[str, Any]:
    cleaned = strip_jsonc(text).strip()
    if not cleaned:
        return {}
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise MergeFailedError(f"Cannot merge {label} content: invalid JSON", str(exc)) from exc
    if not isinstance(data, dict):
        raise MergeFailedError(f"Cannot merge {label} content: expected a JSON object")
    return data


def strip_jsonc(text: str) -> str:
    """Remove comments and trailing commas outside string literals."""
    return _strip_trailing_commas(_strip_comments(text))


def _scan_string(text: str, start: int) -> int:
    """Index just past the string literal opening at ``start``."""
    index = start + 1
    while index < len(text):
        if text[index] == "\\":
            index += 2
            continue
        if text[index] == '"':
            return index + 1
        index += 1
    return len(text)


def _strip_comments(text: str) -> str:
    out: list[str] = []
    index = 0
    while index < len(text):
        char = text[index]
        if char == '"':
            end = _scan_string(text, index)
            out.append(text[index:end])
            index = end
        elif text.startswith("//", index):
            newline = text.find("\n", index)
            index = len(text) if newline < 0 else newline
        elif text.startswith("/*", index):
            end = text.find("*/", index + 2)
            index = len(text) if end < 0 else end + 2
        else:
            out.append(char)
            index += 1
    return "".join(out)


def _strip_trailing_commas(text: str) -> str:
    out: list[str] = []
    index = 0
    while index < len(text):
        char = text[index]
        if char == '"':
            end = _scan_string(text, index)
            out.append(text[index:end])
            index = end
            continue
        if char == ",":
            lookahead = index + 1
            while lookahead < len(text) and text[lookahead] in " \t\r\n":
                lookahead += 1
            if lookahead < len(text) and text[lookahead] in "}]":
                index += 1
                continue
        out.append(char)
        index += 1
    return "".join(out)
