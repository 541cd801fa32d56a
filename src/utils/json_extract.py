# src/utils/json_extract.py
"""
Tolerant JSON parsing for scanner stdout.

Scanners sometimes print banners or warnings around their JSON report. We try,
in order: the whole text, the first balanced top-level object found by
incremental decoding, and finally the span from the first '{' to the last '}'.
"""
import json
from typing import Any

from engine.errors import ParseError

_decoder = json.JSONDecoder()


def _first_balanced_object(text: str) -> Any:
    start = text.find("{")
    while start != -1:
        try:
            value, _ = _decoder.raw_decode(text, start)
            return value
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
    raise ValueError("no balanced JSON object")


def parse_tool_json(text: str) -> Any:
    """Parse `text` as JSON, recovering a document embedded in surrounding noise."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    try:
        return _first_balanced_object(text)
    except ValueError:
        pass

    # last resort
    first, last = text.find("{"), text.rfind("}")
    if first != -1 and last > first:
        try:
            return json.loads(text[first:last + 1])
        except json.JSONDecodeError:
            pass

    raise ParseError("Failed to parse JSON output", text.strip())
