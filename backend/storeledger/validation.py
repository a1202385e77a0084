from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from .errors import ValidationError


# Largest money value accepted from clients, in the smallest currency unit
MAX_AMOUNT = 999_999_999_999

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def _format_loc(loc: tuple) -> str:
    return ".".join(str(part) for part in loc) or "body"


def parse_payload(schema: type[SchemaT], payload: Any) -> SchemaT:
    """
    Validate a decoded JSON body against a request schema.

    Returns the parsed model, or raises ValidationError listing every field
    problem. Runs before any service call so no transaction is opened for
    malformed input.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    try:
        return schema.model_validate(payload)
    except SchemaError as exc:
        fields = [
            {"field": _format_loc(err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        first = fields[0] if fields else {"field": "body", "message": "invalid"}
        raise ValidationError(
            f"{first['field']}: {first['message']}",
            details={"fields": fields},
        ) from None


def require_percent_range(discount_type: str | None, value: int | None, field: str = "discount_value") -> None:
    """Percent discounts must lie within 0..100."""
    if discount_type == "percent" and value is not None and not 0 <= value <= 100:
        raise ValidationError(
            f"{field} must be between 0 and 100 for percent discounts",
            details={"fields": [{"field": field, "message": "out of range"}]},
        )
