from __future__ import annotations

from typing import Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required.")
    return str(value).strip()


def optional_text(value) -> Optional[str]:
    text = str(value or "").strip()
    return text or None


def require_positive_id(value, field_name: str) -> int:
    try:
        ident = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} is not valid.")
    if ident <= 0:
        raise ValidationError(f"{field_name} is not valid.")
    return ident
