"""QR code generation and rendering service."""
import base64
import io
import json
import secrets
from datetime import datetime

import qrcode

CODE_BYTES = 24  # 32 url-safe characters

class QRService:
    """Service for QR code operations."""

    @staticmethod
    def generate_code() -> str:
        """Unpredictable opaque token; carries no session metadata."""
        return secrets.token_urlsafe(CODE_BYTES)

    @staticmethod
    def build_payload(session_id: int, code: str, issued_at: datetime) -> str:
        """JSON string encoded into the QR image."""
        return json.dumps({
            'session_id': session_id,
            'code': code,
            'timestamp': issued_at.isoformat()
        }, separators=(',', ':'))

    @staticmethod
    def render_data_url(payload: str) -> str:
        """Render ``payload`` as a PNG data URL."""
        qr = qrcode.QRCode(
            version=None,  # Auto-determine size
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=2,
        )
        qr.add_data(payload)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")

        buffered = io.BytesIO()
        img.save(buffered, format="PNG")
        img_str = base64.b64encode(buffered.getvalue()).decode()

        return f"data:image/png;base64,{img_str}"

    @staticmethod
    def parse_scanned(value: str) -> str:
        """Accept either the bare code or the JSON payload from the image."""
        value = (value or '').strip()
        if value.startswith('{'):
            try:
                data = json.loads(value)
            except json.JSONDecodeError:
                return value
            if isinstance(data, dict) and isinstance(data.get('code'), str):
                return data['code']
        return value
