"""Decoding of structured JSON out of free-text completions."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ParseError(ValueError):
    """Completion text is not JSON of the expected shape."""


def extract_json(text: str) -> Optional[Dict[str, Any]]:
    """Extract a JSON object from LLM response text."""
    if not text:
        return None

    # Fenced code block
    json_match = re.search(r"```(?:json)?\s*\n?(.*?)```", text, re.DOTALL | re.IGNORECASE)
    if json_match:
        try:
            data = json.loads(json_match.group(1).strip())
            if isinstance(data, dict):
                return data
        except json.JSONDecodeError:
            pass

    try:
        data = json.loads(text.strip())
        if isinstance(data, dict):
            return data
    except json.JSONDecodeError:
        pass

    # Outermost braces
    brace_match = re.search(r"\{.*\}", text, re.DOTALL)
    if brace_match:
        try:
            data = json.loads(brace_match.group(0))
            if isinstance(data, dict):
                return data
        except json.JSONDecodeError:
            pass

    return None


def decode_json(text: str, decoder: Callable[[Dict[str, Any]], T]) -> T:
    data = extract_json(text)
    if data is None:
        raise ParseError("Could not parse JSON object from response")
    return decoder(data)


def decode_with_default(
    text: str,
    decoder: Callable[[Dict[str, Any]], T],
    default: T,
    *,
    label: str = "completion",
) -> T:
    """Decode `text` with `decoder`, returning `default` on ParseError."""
    try:
        return decode_json(text, decoder)
    except ParseError as exc:
        logger.warning("Falling back to default %s: %s", label, exc)
        return default


def string_list(value: Any, *, field_name: str = "value") -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        raise ParseError(f"{field_name} must be a list of strings")
    result: List[str] = []
    for item in value:
        if item is None or isinstance(item, (dict, list)):
            continue
        text = str(item).strip()
        if text:
            result.append(text)
    return result


def score_value(value: Any, default: int, *, field_name: str = "score") -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        raise ParseError(f"{field_name} must be numeric")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ParseError(f"{field_name} must be numeric") from exc
    if number != number:  # NaN
        raise ParseError(f"{field_name} must be numeric")
    return int(round(min(100.0, max(0.0, number))))
