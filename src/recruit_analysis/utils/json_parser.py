"""Utility to extract JSON from LLM responses.

Model output is free-form text: it may be wrapped in markdown fences, preceded
by prose, or cut off mid-object. Nothing here raises on bad input; callers get
``None`` and decide whether to retry or fall back.
"""

from __future__ import annotations

import json
import logging

logger = logging.getLogger(__name__)


def extract_json(text: str | None) -> str | None:
    """Return a JSON substring of ``text`` that parses, or None.

    Tries in order:
    1. Strip fenced code block markers and parse the whole text
    2. First balanced '{...}' span (string-aware brace matching)
    3. First '{' to last '}'
    4. Repair truncated JSON (close open brackets/braces)
    """
    if not isinstance(text, str):
        return None
    text = text.strip()
    if not text:
        return None

    stripped = _strip_code_fences(text)
    if _parses(stripped):
        return stripped

    for candidate in (stripped, text) if stripped != text else (text,):
        span = _first_balanced_object(candidate)
        if span is not None and _parses(span):
            return span

        span = _widest_braces(candidate)
        if span is not None and _parses(span):
            return span

    repaired = _try_repair_truncated(stripped)
    if repaired is not None:
        return repaired

    logger.debug("No JSON found in response: %.80s", text)
    return None


def parse_json_object(text: str | None) -> dict | None:
    """Extract and decode a JSON object; arrays and scalars yield None."""
    raw = extract_json(text)
    if raw is None:
        return None
    data = json.loads(raw)
    return data if isinstance(data, dict) else None


def _parses(text: str) -> bool:
    if not text:
        return False
    try:
        json.loads(text)
    except (json.JSONDecodeError, TypeError, RecursionError):
        return False
    return True


def _strip_code_fences(text: str) -> str:
    """Remove markdown code fence markers, keeping what sits between them."""
    start = text.find("```")
    if start == -1:
        return text
    body_start = text.find("\n", start)
    if body_start == -1:
        return text
    end = text.find("```", body_start)
    body = text[body_start + 1 : end] if end != -1 else text[body_start + 1 :]
    return body.strip()


def _first_balanced_object(text: str) -> str | None:
    """Return the first top-level '{...}' span that parses, ignoring braces inside strings."""
    start = text.find("{")
    while start != -1:
        end = _matching_brace(text, start)
        if end is None:
            # unclosed: every later brace is nested inside it
            return None
        span = text[start : end + 1]
        if _parses(span):
            return span
        start = text.find("{", end + 1)
    return None


def _matching_brace(text: str, start: int) -> int | None:
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return None


def _widest_braces(text: str) -> str | None:
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        return text[start : end + 1]
    return None


def _try_repair_truncated(text: str) -> str | None:
    """Try to repair truncated JSON by closing open braces/brackets."""
    start = text.find("{")
    if start == -1:
        return None

    candidate = text[start:].rstrip()
    closers = _unclosed(candidate)
    if closers:
        repaired = candidate.rstrip(",") + closers
        if _parses(repaired):
            return repaired

    # Cut back to the last complete string value and close from there
    last_quote = candidate.rfind('"')
    if last_quote > 0:
        truncated = candidate[: last_quote + 1]
        closers = _unclosed(truncated)
        if closers:
            repaired = truncated.rstrip().rstrip(",") + closers
            if _parses(repaired):
                return repaired
        # Dangling key without a value: drop it
        cut = truncated.rfind(",")
        if cut > 0:
            head = truncated[:cut]
            closers = _unclosed(head)
            if closers and _parses(head + closers):
                return head + closers

    return None


def _unclosed(text: str) -> str:
    """Closing characters needed for the brackets left open in ``text``."""
    stack: list[str] = []
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in "{[":
            stack.append("}" if ch == "{" else "]")
        elif ch in "}]" and stack:
            stack.pop()
    if in_string:
        return ""
    return "".join(reversed(stack))
