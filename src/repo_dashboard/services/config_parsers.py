"""Config file parsers — one per candidate format.

``.json`` and ``.jsonc`` go through the stdlib JSON parser (comments and
trailing commas are stripped first for ``.jsonc``).  ``.toml`` goes through
a deliberately small line parser that only understands top-level string
assignments and ``pattern = "..."`` occurrences; everything else is skipped.
"""

from __future__ import annotations

import json
import re
from typing import Any

from repo_dashboard.domain.exceptions import ConfigParseError

_TOML_HEADER_RE = re.compile(r"^\[\[?\s*[^\[\]]+\s*\]\]?$")
_TOML_ASSIGN_RE = re.compile(r"^([A-Za-z0-9_-]+)\s*=\s*(.*)$")
_TOML_STRING_RE = re.compile(r"""^(?:"((?:[^"\\]|\\.)*)"|'([^']*)')$""")
_TOML_PATTERN_RE = re.compile(r"""\bpattern\s*=\s*(?:"((?:[^"\\]|\\.)*)"|'([^']*)')""")
_TOML_ESCAPE_RE = re.compile(r"""\\(["\\])""")


def parse_config(content: str, file_name: str) -> dict[str, Any]:
    """Parse *content* according to *file_name*'s extension."""
    lowered = file_name.lower()
    if lowered.endswith(".toml"):
        return parse_restricted_toml(content)
    if lowered.endswith(".jsonc"):
        return _load_json_object(strip_json_comments(content), file_name)
    if lowered.endswith(".json"):
        return _load_json_object(content, file_name)
    raise ConfigParseError(f"Unsupported config format: {file_name}")


def _load_json_object(text: str, file_name: str) -> dict[str, Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigParseError(f"{file_name}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigParseError(f"{file_name}: top-level value must be an object")
    return data


# ── JSON with comments ──────────────────────────────────────────────────────


def strip_json_comments(text: str) -> str:
    """Remove ``//`` and ``/* */`` comments and trailing commas outside strings."""
    out: list[str] = []
    i, n = 0, len(text)
    in_string = False

    while i < n:
        ch = text[i]
        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            if ch == '"':
                in_string = False
            i += 1
            continue

        if ch == '"':
            in_string = True
            out.append(ch)
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = n if end == -1 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            if end == -1:
                raise ConfigParseError("Unterminated block comment")
            # Keep a separator so tokens on either side do not fuse.
            out.append(" ")
            i = end + 2
        else:
            out.append(ch)
            i += 1

    return _strip_trailing_commas("".join(out))


def _strip_trailing_commas(text: str) -> str:
    out: list[str] = []
    in_string = False
    i, n = 0, len(text)
    while i < n:
        ch = text[i]
        if in_string:
            if ch == "\\" and i + 1 < n:
                out.append(text[i : i + 2])
                i += 2
                continue
            if ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == ",":
            j = i + 1
            while j < n and text[j].isspace():
                j += 1
            if j < n and text[j] in "}]":
                i += 1
                continue
        out.append(ch)
        i += 1
    return "".join(out)


# ── Restricted TOML ─────────────────────────────────────────────────────────


def parse_restricted_toml(content: str) -> dict[str, Any]:
    """Extract top-level string assignments and every ``pattern = "..."``.

    Each ``pattern`` key, bare or inside an inline table, becomes one entry
    in ``routes``; text inside other string values is never matched.
    Tables, arrays of tables and non-string values are ignored.  Never
    raises on unsupported syntax.
    """
    config: dict[str, Any] = {}
    routes: list[dict[str, str]] = []
    top_level = True

    for raw_line in content.splitlines():
        line = _strip_toml_comment(raw_line).strip()
        if not line:
            continue

        if _TOML_HEADER_RE.match(line):
            top_level = False
            continue

        quoted = _quoted_spans(line)
        for match in _TOML_PATTERN_RE.finditer(line):
            if any(start <= match.start() < end for start, end in quoted):
                continue
            routes.append({"pattern": _toml_string(match)})

        if not top_level:
            continue

        assign = _TOML_ASSIGN_RE.match(line)
        if assign is None:
            continue
        key, value = assign.group(1), assign.group(2).strip()
        scalar = _TOML_STRING_RE.match(value)
        if scalar is not None and key != "pattern":
            config[key] = _toml_string(scalar)

    if routes:
        config["routes"] = routes
    return config


def _toml_string(match: re.Match[str]) -> str:
    basic, literal = match.group(1), match.group(2)
    if basic is not None:
        return _TOML_ESCAPE_RE.sub(r"\1", basic)
    return literal or ""


def _quoted_spans(line: str) -> list[tuple[int, int]]:
    """Return the [start, end) offsets of every quoted string on *line*."""
    spans: list[tuple[int, int]] = []
    quote: str | None = None
    escaped = False
    start = 0
    for idx, ch in enumerate(line):
        if quote is not None:
            if escaped:
                escaped = False
            elif ch == "\\" and quote == '"':
                escaped = True
            elif ch == quote:
                spans.append((start, idx + 1))
                quote = None
        elif ch in "\"'":
            quote = ch
            start = idx
    if quote is not None:
        spans.append((start, len(line)))
    return spans


def _strip_toml_comment(line: str) -> str:
    quote: str | None = None
    escaped = False
    for idx, ch in enumerate(line):
        if quote is not None:
            if escaped:
                escaped = False
            elif ch == "\\" and quote == '"':
                escaped = True
            elif ch == quote:
                quote = None
        elif ch in "\"'":
            quote = ch
        elif ch == "#":
            return line[:idx]
    return line
