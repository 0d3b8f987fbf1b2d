from __future__ import annotations

import dataclasses
import logging
from datetime import datetime
from enum import Enum
from functools import wraps
from typing import Any

from flask import jsonify, request, session

from ..core.exceptions import DomainError, ValidationError
from .access import Actor
from .datetime_utils import to_iso

logger = logging.getLogger(__name__)


def to_json(value: Any) -> Any:
    """Dataclasses, enums and instants -> JSON-ready values."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_json(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return to_iso(value)
    if isinstance(value, dict):
        return {k: to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_json(v) for v in value]
    return value


def json_ok(message: str, status_code: int = 200, **data):
    return jsonify({"success": True, "message": message, **{k: to_json(v) for k, v in data.items()}}), status_code


def json_error(message: str, status: int = 400):
    return jsonify({"success": False, "message": message}), status


def current_actor() -> Actor:
    # Role comes from the auth layer; normalized once here.
    return Actor.of(session["user_id"], session.get("role"))


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.")
    return data


def api_view(view):
    """Require a logged-in session and turn domain errors into JSON responses."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return json_error("Please log in to continue.", 401)
        try:
            return view(*args, **kwargs)
        except DomainError as e:
            return json_error(str(e), e.status_code)
        except Exception:
            logger.exception("unhandled error in %s", request.path)
            return json_error("Internal server error.", 500)

    return wrapper
