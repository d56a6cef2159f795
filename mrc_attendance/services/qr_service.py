"""QR token signing, verification and rendering."""
import base64
import hashlib
import hmac
import io
import json
from datetime import datetime
from typing import Dict, Optional, Tuple

import qrcode

from mrc_attendance.utils.errors import (
    BadRequestError, ConfigurationError, ExpiredTokenError, InvalidSignatureError
)
from mrc_attendance.utils.helpers import parse_iso_timestamp, to_iso, utcnow
from mrc_attendance.utils.validators import MAX_ID_LENGTH, Validator

TOKEN_FIELDS = ['userId', 'activityId', 'timestamp', 'signature']
ID_LIMITS = {'userId': MAX_ID_LENGTH, 'activityId': MAX_ID_LENGTH}
DEFAULT_VALIDITY_SECONDS = 300

class QRService:
    """Service for attendance QR tokens.

    A token binds a user to an activity at an instant::

        signature = hex(HMAC-SHA256(secret, "userId|activityId|timestamp"))

    Only the server holds the secret, so minting is a server-side
    operation even though the token is displayed by the member's client.
    """

    @staticmethod
    def signing_message(user_id: str, activity_id: str, timestamp: str) -> str:
        return f"{user_id}|{activity_id}|{timestamp}"

    @staticmethod
    def sign(user_id: str, activity_id: str, timestamp: str, secret: str) -> str:
        """Hex-encoded HMAC-SHA256 of the token fields."""
        message = QRService.signing_message(user_id, activity_id, timestamp)
        return hmac.new(secret.encode('utf-8'), message.encode('utf-8'), hashlib.sha256).hexdigest()

    @staticmethod
    def verify_signature(
        user_id: str,
        activity_id: str,
        timestamp: str,
        signature: str,
        secret: str
    ) -> bool:
        """Constant-time comparison of the supplied and expected signatures."""
        expected = QRService.sign(user_id, activity_id, timestamp, secret)
        return hmac.compare_digest(expected.encode('utf-8'), signature.encode('utf-8'))

    @staticmethod
    def issue_token(
        user_id: str,
        activity_id: str,
        secret: Optional[str],
        now: Optional[datetime] = None
    ) -> Dict[str, str]:
        """Mint a signed token for ``user_id`` at ``activity_id``."""
        if not user_id or not activity_id:
            raise BadRequestError("userId and activityId required")

        if len(user_id) > MAX_ID_LENGTH or len(activity_id) > MAX_ID_LENGTH:
            raise BadRequestError(f"userId and activityId must be at most {MAX_ID_LENGTH} characters")

        if not secret:
            raise ConfigurationError()

        timestamp = to_iso(now or utcnow())
        return {
            'userId': user_id,
            'activityId': activity_id,
            'timestamp': timestamp,
            'signature': QRService.sign(user_id, activity_id, timestamp, secret)
        }

    @staticmethod
    def check_freshness(
        timestamp: str,
        validity_seconds: int,
        now: Optional[datetime] = None
    ) -> float:
        """Return the token age in seconds or raise if outside the window.

        Future timestamps are rejected the same way as expired ones.
        """
        try:
            issued_at = parse_iso_timestamp(timestamp)
        except (ValueError, OverflowError):
            raise BadRequestError("Invalid timestamp") from None

        age = ((now or utcnow()) - issued_at).total_seconds()
        if age < 0 or age > validity_seconds:
            raise ExpiredTokenError()
        return age

    @staticmethod
    def verify_token(
        payload,
        secret: Optional[str],
        validity_seconds: int = DEFAULT_VALIDITY_SECONDS,
        now: Optional[datetime] = None
    ) -> Tuple[str, str]:
        """
        Validate a scanned token.
        Returns: (user_id, activity_id)

        Checks run in order and the first failure raises: payload shape,
        secret configuration, signature, freshness.
        """
        fields = Validator.require_fields(
            payload, TOKEN_FIELDS, message="Invalid payload", max_lengths=ID_LIMITS
        )

        if not secret:
            raise ConfigurationError()

        if not QRService.verify_signature(
            fields['userId'],
            fields['activityId'],
            fields['timestamp'],
            fields['signature'],
            secret
        ):
            raise InvalidSignatureError()

        QRService.check_freshness(fields['timestamp'], validity_seconds, now)

        return fields['userId'], fields['activityId']

    @staticmethod
    def render_qr_image(payload: Dict[str, str]) -> str:
        """Render the compact JSON payload as a base64 PNG data URI."""
        qr_string = json.dumps(payload, separators=(',', ':'))

        qr = qrcode.QRCode(
            version=None,  # Auto-determine size
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=4,
        )
        qr.add_data(qr_string)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")

        buffered = io.BytesIO()
        img.save(buffered, format="PNG")
        img_str = base64.b64encode(buffered.getvalue()).decode()

        return f"data:image/png;base64,{img_str}"
