from __future__ import annotations

from typing import Any
from uuid import UUID

from tezeus.shared.exceptions import ValidationError


def parse_uuid(value: Any, field: str) -> UUID:
    """UUID from a header/body value; malformed ids are a 400, not a 500."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field}", details={"field": field})
