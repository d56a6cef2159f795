"""Validation utilities for the application."""
import re
from typing import Any, Dict, List

from mrc_attendance.utils.errors import BadRequestError

MAX_ID_LENGTH = 64

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')

class Validator:
    """Validation helper class."""

    @staticmethod
    def validate_email(email: str) -> bool:
        """Validate email format."""
        if not email:
            return False
        return bool(EMAIL_PATTERN.match(email))

    @staticmethod
    def missing_fields(data: Any, required_fields: List[str]) -> List[str]:
        """Return required fields that are absent, empty or not strings."""
        if not isinstance(data, dict):
            return list(required_fields)

        missing = []
        for field in required_fields:
            value = data.get(field)
            if not isinstance(value, str) or not value:
                missing.append(field)
        return missing

    @staticmethod
    def require_fields(
        data: Any,
        required_fields: List[str],
        message: str = None,
        max_lengths: Dict[str, int] = None
    ) -> Dict[str, str]:
        """Return the required string fields or raise ``BadRequestError``.

        ``max_lengths`` caps individual fields; an over-long value is
        reported like a missing one.
        """
        missing = Validator.missing_fields(data, required_fields)
        if missing:
            raise BadRequestError(message or f"Missing required field: {missing[0]}")

        for field, limit in (max_lengths or {}).items():
            if len(data[field]) > limit:
                raise BadRequestError(message or f"{field} must be at most {limit} characters")

        return {field: data[field] for field in required_fields}
