from __future__ import annotations

import json
from typing import Any

from vizboard.core.errors import ValidationError


def validate_query(text: Any) -> str:
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("Please enter a query to generate your dashboard.", title="Query Required")
    return text.strip()


def parse_specification_json(text: Any) -> dict[str, Any]:
    """Parse a manually supplied specification document."""

    if not isinstance(text, str) or not text.strip():
        raise ValidationError("Please enter a dashboard specification")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Invalid JSON: {exc.msg} (line {exc.lineno}, column {exc.colno})") from exc
    if not isinstance(payload, dict):
        raise ValidationError("Dashboard specification must be a JSON object")
    return payload
