"""
Decoding helpers for the upstream's event-stream framed JSON-RPC responses.

The upstream answers every POST with a text body where payload lines look like
``data: {...}``. Only the first parsable payload is of interest.
"""
import json
from typing import Any

from zai_search_proxy.errors import SearchResultJSONError

DATA_PREFIX = "data:"


def parse_event_stream(text: str) -> dict[str, Any] | None:
    """Return the first ``data:`` payload in ``text`` that parses as JSON.

    Returns None when no payload parses, or when the first one is not a JSON object.
    """
    for line in text.split("\n"):
        if not line.startswith(DATA_PREFIX):
            continue
        payload = line[len(DATA_PREFIX) :].strip()
        if not payload:
            continue
        try:
            message = json.loads(payload)
        except json.JSONDecodeError:
            continue
        return message if isinstance(message, dict) else None
    return None


def extract_result_text(message: dict[str, Any] | None) -> str | None:
    """Pull ``result.content[0].text`` out of a JSON-RPC message."""
    if not isinstance(message, dict):
        return None
    result = message.get("result")
    if not isinstance(result, dict):
        return None
    content = result.get("content")
    if not isinstance(content, list) or not content:
        return None
    first = content[0]
    if not isinstance(first, dict):
        return None
    text = first.get("text")
    return text if isinstance(text, str) else None


def decode_result_text(text: str) -> Any:
    """Parse tool result text, unwrapping one level of string encoding if present."""
    try:
        if len(text) >= 2 and text.startswith('"') and text.endswith('"'):
            return json.loads(text[1:-1].replace('\\"', '"'))
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise SearchResultJSONError(f"JSON parsing error: {e}") from e
