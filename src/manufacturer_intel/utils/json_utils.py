"""Helpers for pulling JSON out of free-form LLM replies."""
import json
from typing import Any, Optional

from ..core.logging import logger


_PAIRS = {"{": "}", "[": "]"}


def extract_json_block(text: Optional[str], kind: str = "object") -> Optional[Any]:
    """
    Locate and parse the first balanced JSON object or array in a reply.

    Markdown code fences and prose around the JSON are tolerated. Strings
    inside the JSON are honoured when matching brackets, so braces in
    values do not end the span early.

    Args:
        text: Raw reply text
        kind: "object" for ``{...}`` or "array" for ``[...]``

    Returns:
        The parsed value, or None when no parsable span of that kind exists
    """
    if not text:
        return None

    opener = "{" if kind == "object" else "["
    closer = _PAIRS[opener]

    start = text.find(opener)
    while start != -1:
        end = _find_matching(text, start, opener, closer)
        if end is None:
            break
        candidate = text[start:end + 1]
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            # Not valid JSON (e.g. "[1]" inside prose); try the next opener
            start = text.find(opener, start + 1)

    logger.debug(f"No JSON {kind} found in reply: {text[:200]!r}")
    return None


def _find_matching(text: str, start: int, opener: str, closer: str) -> Optional[int]:
    depth = 0
    in_string = False
    escaped = False

    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return index
    return None


def coerce_str(value: Any) -> Optional[str]:
    """Return a stripped string, or None for empty / non-scalar values."""
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    if not text or text.lower() in ("null", "none", "n/a"):
        return None
    return text


def coerce_str_list(value: Any) -> list:
    """Return a list of non-empty strings; anything else becomes []."""
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [s for s in (coerce_str(item) for item in value) if s]


def coerce_int(value: Any) -> Optional[int]:
    """Parse ints such as 120, "120" or "1,200"; None when not numeric."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return int(value)
    digits = str(value).replace(",", "").strip()
    try:
        return int(float(digits))
    except ValueError:
        return None


def coerce_float(value: Any) -> Optional[float]:
    """Parse a float; None when not numeric."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
