"""Helper functions for the application."""
import re
from datetime import datetime, timezone
from flask import jsonify
from typing import Any

FRACTION_PATTERN = re.compile(r"(T\d{2}:\d{2}:\d{2})\.(\d+)")

def handle_error(message, status_code: int):
    """Handle application errors with consistent format."""
    return jsonify({'error': str(message)}), status_code

def success_response(data: Any = None, message: str = "ok", status_code: int = 200):
    """Return consistent success response."""
    response = {
        'ok': True,
        'message': message
    }

    if data is not None:
        response['data'] = data

    return jsonify(response), status_code

def error_response(message: str, status_code: int = 400):
    """Return consistent error response."""
    return handle_error(message, status_code)

def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the way it is stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)

def to_iso(value: datetime) -> str:
    """Format a naive UTC datetime as ``2025-01-01T00:00:00.000Z``."""
    return value.strftime('%Y-%m-%dT%H:%M:%S.') + f'{value.microsecond // 1000:03d}Z'

def parse_iso_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 string into a naive UTC datetime.

    A trailing ``Z`` and explicit offsets are accepted; a string without
    an offset is taken to be UTC. Raises ``ValueError`` on bad input.
    """
    if not isinstance(value, str):
        raise ValueError(f"Timestamp must be a string, got {type(value).__name__}")

    text = value.strip()
    if text.endswith(('Z', 'z')):
        text = text[:-1] + '+00:00'

    # Older interpreters only accept 3 or 6 fractional digits
    text = FRACTION_PATTERN.sub(
        lambda m: m.group(1) + '.' + (m.group(2) + '000000')[:6], text, count=1
    )

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        try:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        except OverflowError:
            raise ValueError(f"Timestamp out of range: {value}") from None
    return parsed
