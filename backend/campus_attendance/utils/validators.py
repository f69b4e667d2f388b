"""Validation utilities for the application."""
import re
from datetime import datetime, timezone
from typing import Dict, List, Any

from campus_attendance.models.session import SessionType

class Validator:
    """Validation helper class."""

    @staticmethod
    def validate_email(email: str) -> bool:
        """Validate email format."""
        if not email:
            return False
        pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        return bool(re.match(pattern, email))

    @staticmethod
    def parse_datetime(value: Any):
        """Parse an ISO-8601 value into a naive UTC datetime, or None."""
        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, str) and value.strip():
            text = value.strip()
            if text.endswith('Z'):
                text = text[:-1] + '+00:00'
            try:
                parsed = datetime.fromisoformat(text)
            except ValueError:
                return None
        else:
            return None

        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        return parsed

    @staticmethod
    def validate_required_fields(data: Dict, required_fields: List[str]) -> Dict[str, Any]:
        """Validate required fields in data."""
        errors = []

        for field in required_fields:
            if field not in data or data[field] in (None, ''):
                errors.append(f"{field} is required")

        return {
            "is_valid": len(errors) == 0,
            "errors": errors
        }

    @staticmethod
    def validate_session_payload(
        data: Dict,
        min_rotation: int = 1,
        max_rotation: int = 30,
        partial: bool = False
    ) -> Dict[str, Any]:
        """Validate session booking/update input."""
        errors = []

        if not partial:
            errors.extend(Validator.validate_required_fields(
                data, ['environment_id', 'name', 'type', 'start_time', 'end_time']
            )['errors'])
        elif not data:
            errors.append("At least one field must be provided")

        name = data.get('name')
        if name is not None:
            if not isinstance(name, str) or len(name.strip()) < 3:
                errors.append("name must be at least 3 characters long")
            elif len(name.strip()) > 200:
                errors.append("name cannot exceed 200 characters")

        session_type = data.get('type')
        if session_type is not None:
            try:
                SessionType(str(session_type).lower())
            except ValueError:
                valid = ', '.join(t.value for t in SessionType)
                errors.append(f"type must be one of: {valid}")

        start = end = None
        if data.get('start_time') is not None:
            start = Validator.parse_datetime(data['start_time'])
            if start is None:
                errors.append("start_time must be an ISO-8601 datetime")
        if data.get('end_time') is not None:
            end = Validator.parse_datetime(data['end_time'])
            if end is None:
                errors.append("end_time must be an ISO-8601 datetime")
        if start and end and start >= end:
            errors.append("end_time must be after start_time")

        rotation = data.get('qr_rotation_minutes')
        if rotation is not None:
            if isinstance(rotation, bool) or not isinstance(rotation, int):
                errors.append("qr_rotation_minutes must be an integer")
            elif not min_rotation <= rotation <= max_rotation:
                errors.append(
                    f"qr_rotation_minutes must be between {min_rotation} and {max_rotation}"
                )

        allow_externals = data.get('allow_externals')
        if allow_externals is not None and not isinstance(allow_externals, bool):
            errors.append("allow_externals must be true or false")

        if data.get('host_name') and allow_externals is not True:
            errors.append("host_name is only allowed when allow_externals is true")

        return {
            "is_valid": len(errors) == 0,
            "errors": errors
        }
