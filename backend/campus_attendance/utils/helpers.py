"""Helper functions for the application."""
from datetime import datetime, timezone
from flask import jsonify
from typing import Any

def utcnow() -> datetime:
    """Current instant as a naive UTC datetime, the way timestamps are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)

def handle_error(error, status_code: int):
    """Handle application errors with consistent format."""
    return jsonify({
        'error': True,
        'message': str(error),
        'status_code': status_code
    }), status_code

def success_response(data: Any = None, message: str = "Success", status_code: int = 200):
    """Return consistent success response."""
    response = {
        'error': False,
        'message': message
    }

    if data is not None:
        response['data'] = data

    return jsonify(response), status_code

def error_response(message: str, status_code: int = 400, code: str = None, data: Any = None):
    """Return consistent error response."""
    response = {
        'error': True,
        'message': message,
        'status_code': status_code
    }
    if code:
        response['code'] = code
    if data is not None:
        response['data'] = data

    return jsonify(response), status_code

def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes elapsed between two instants."""
    return int((end - start).total_seconds() // 60)

def isoformat(value: datetime) -> str:
    return value.isoformat() if value else None
