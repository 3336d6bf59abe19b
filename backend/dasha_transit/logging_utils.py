"""
Logging Utilities

Helpers that strip secrets and personal birth data before request payloads
reach the logs.
"""

import json
from typing import Any, Dict

from flask import Request


# Keys that are never logged
SENSITIVE_KEYS = {
    "password", "secret", "token", "api_key", "apikey", "auth",
    "authorization", "cookie", "session", "csrf", "bearer",
}

# Birth data is personal: exact date/time and place identify a person
PII_KEYS = {
    "email", "phone", "name", "datetime", "birth_date", "birthdate",
    "birthdatetime", "latitude", "longitude", "lat", "lon", "place",
}

REDACTED = "[REDACTED]"


def _is_pii(key_lower: str) -> bool:
    return key_lower in PII_KEYS or any(pii in key_lower for pii in ("birth", "email", "phone"))


def sanitize_dict(data: Dict[str, Any], redact_pii: bool = True) -> Dict[str, Any]:
    """
    Sanitize a dictionary by removing secrets and redacting birth data.

    Example:
        >>> sanitize_dict({"datetime": "1990-05-15T10:30:00", "latitude": 18.5, "depth": 2})
        {"datetime": "[REDACTED]", "latitude": "[REDACTED]", "depth": 2}
    """
    if not isinstance(data, dict):
        return data

    sanitized = {}
    for key, value in data.items():
        key_lower = str(key).lower()

        if any(sensitive in key_lower for sensitive in SENSITIVE_KEYS):
            continue

        if redact_pii and _is_pii(key_lower):
            sanitized[key] = REDACTED
            continue

        if isinstance(value, dict):
            sanitized[key] = sanitize_dict(value, redact_pii)
        elif isinstance(value, list):
            sanitized[key] = [
                sanitize_dict(item, redact_pii) if isinstance(item, dict) else item
                for item in value
            ]
        else:
            sanitized[key] = value

    return sanitized


def sanitize_request_data(request: Request, max_length: int = 500) -> str:
    """Sanitized, truncated request body for logging."""
    if request.is_json:
        data = request.get_json(silent=True)
        if isinstance(data, dict):
            result = json.dumps(sanitize_dict(data), separators=(",", ":"), default=str)
        elif data is None:
            result = "No JSON data"
        else:
            result = f"JSON {type(data).__name__}"
    else:
        # For non-JSON, just log content type and length
        result = f"Content-Type: {request.content_type or 'none'}, Length: {request.content_length or 0}"

    if len(result) > max_length:
        result = result[:max_length] + "..."
    return result


def sanitize_headers(headers) -> Dict[str, str]:
    """Keep only a short list of harmless headers."""
    safe_headers = {
        "content-type", "content-length", "accept",
        "user-agent", "referer", "origin",
    }

    sanitized = {}
    for key, value in headers.items():
        key_lower = key.lower()
        if any(sensitive in key_lower for sensitive in SENSITIVE_KEYS):
            continue
        if key_lower in safe_headers:
            if key_lower == "user-agent" and len(value) > 100:
                sanitized[key] = value[:100] + "..."
            else:
                sanitized[key] = value
    return sanitized
