"""
Query response envelope framing.

The query endpoint answers with a JSON payload wrapped in a callback call:

    /*O_o*/
    google.visualization.Query.setResponse({"version": "0.6", "status": "ok", ...});

``unwrap_envelope`` recovers and decodes the payload and rejects responses
whose status reports an error.
"""

import json
from typing import Any, Dict

from sheetrecords.exceptions import ParseError

STATUS_OK = "ok"
STATUS_WARNING = "warning"
STATUS_ERROR = "error"


def unwrap_envelope(text: str) -> Dict[str, Any]:
    """Strip the callback framing from ``text`` and decode the payload.

    The payload is everything between the first ``(`` and the last ``)``.

    Args:
        text: Raw response body

    Returns:
        The decoded payload dictionary (status "ok" or "warning")

    Raises:
        ParseError: If the framing markers are missing or out of order, the
            payload is not a JSON object, or the status reports an error
    """
    if not isinstance(text, str):
        raise ParseError(f"Expected envelope text, got {type(text).__name__}")

    start = text.find("(")
    end = text.rfind(")")
    if start < 0 or end < 0 or end <= start:
        raise ParseError("Envelope framing not found")

    try:
        payload = json.loads(text[start + 1:end])
    except ValueError as e:
        raise ParseError(f"Envelope payload is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise ParseError("Envelope payload is not an object")

    status = payload.get("status")
    if status == STATUS_ERROR:
        errors = payload.get("errors") or []
        details = "; ".join(_describe(e) for e in errors) or "no details"
        raise ParseError(f"Query service reported an error: {details}", errors=errors)
    if status not in (STATUS_OK, STATUS_WARNING):
        raise ParseError(f"Unknown envelope status: {status!r}")

    return payload


def _describe(entry: Any) -> str:
    if isinstance(entry, dict):
        return entry.get("detailed_message") or entry.get("message") or entry.get("reason") or str(entry)
    return str(entry)
