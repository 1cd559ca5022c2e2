"""Utility to locate and decode JSON in free-form completion text."""

from __future__ import annotations

import json
import logging
import re

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


class ExtractionError(ValueError):
    """No usable JSON could be located in the text."""

    def __init__(self, message: str, text: str = ""):
        super().__init__(message)
        self.snippet = text[:500]


def extract_json(text: str) -> dict | list:
    """Extract JSON from a completion response.

    Tries in order:
    1. Direct json.loads on the full text
    2. The body of each fenced code block (```json ... ``` or ``` ... ```)
    3. The outermost balanced {...} or [...] span in the text
    4. The same span with trailing commas removed
    5. Repair of truncated output (close open strings, brackets and braces)
    """
    if not isinstance(text, str):
        raise ExtractionError(f"Expected text, got {type(text).__name__}")
    text = text.strip()
    if not text:
        raise ExtractionError("Could not extract JSON from empty text")

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    candidates = [m.group(1).strip() for m in _FENCE_RE.finditer(text)]
    candidates.append(text)

    for candidate in candidates:
        for span in _balanced_spans(candidate):
            for attempt in (span, _TRAILING_COMMA_RE.sub(r"\1", span)):
                try:
                    return json.loads(attempt)
                except json.JSONDecodeError:
                    continue

    for candidate in candidates:
        repaired = _repair_truncated(candidate)
        if repaired is not None:
            logger.warning("Recovered truncated JSON (%d chars)", len(candidate))
            return repaired

    raise ExtractionError(f"Could not extract JSON from text: {text[:200]}...", text)


def _balanced_spans(text: str):
    """Yield balanced {...}/[...] spans, outermost first, ignoring brackets inside strings."""
    start = _first_opener(text)
    while start is not None:
        span = _span_from(text, start)
        if span is None:
            # Unclosed container: anything after is nested inside it
            return
        yield span
        start = _first_opener(text, start + len(span))


def _span_from(text: str, start: int) -> str | None:
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
        elif ch in "{[":
            depth += 1
        elif ch in "}]":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def _first_opener(text: str, offset: int = 0) -> int | None:
    positions = [p for p in (text.find("{", offset), text.find("[", offset)) if p != -1]
    return min(positions) if positions else None


def _repair_truncated(text: str) -> dict | list | None:
    """Close whatever is still open at the end of a cut-off JSON document."""
    start = _first_opener(text)
    if start is None:
        return None
    candidate = text[start:].rstrip()

    stack: list[str] = []
    in_string = False
    escaped = False
    last_safe = 0  # index just after the last complete value/container
    for i, ch in enumerate(candidate):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
                last_safe = i + 1
            continue
        if ch == '"':
            in_string = True
        elif ch in "{[":
            stack.append("}" if ch == "{" else "]")
        elif ch in "}]":
            if not stack:
                return None
            stack.pop()
            last_safe = i + 1
        elif ch not in " \t\r\n,:":
            last_safe = i + 1

    if not stack and not in_string:
        return None

    attempts = []
    if in_string:
        attempts.append(candidate + '"')
    attempts.append(candidate)
    attempts.append(candidate[:last_safe])

    for body in attempts:
        body = body.rstrip().rstrip(",").rstrip()
        if body.endswith(":"):
            body += " null"
        closers = _closers_for(body)
        if closers is None:
            continue
        try:
            return json.loads(body + closers)
        except json.JSONDecodeError:
            continue
    return None


def _closers_for(body: str) -> str | None:
    stack: list[str] = []
    in_string = False
    escaped = False
    for ch in body:
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
        elif ch in "}]":
            if not stack:
                return None
            stack.pop()
    if in_string:
        return None
    return "".join(reversed(stack))
