# Overview: Payload validation for catalog writes, driven by SQLAlchemy column metadata.

"""
Catalog payload validation

validate_payload turns a client JSON object into a patch dict that can be
applied to a catalog model. Column metadata decides the type, nullability
and length rules; a ModelValidationPolicy decides which keys a client may
send at all, which are required on create, which may only be set on
create, and which accept a fixed set of values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Boolean, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from optistore.pricing import to_decimal


# Maximum unit price / cost accepted from clients
MAX_PRICE = Decimal("9999999.99")


class ValidationError(ValueError):
    """400-level input problem."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    writable_fields: keys a client may send (everything else is rejected)
    required_on_create: keys that must be present on create
    create_only_fields: keys accepted on create but rejected on update
    choices: key -> allowed values
    """
    writable_fields: frozenset[str]
    required_on_create: frozenset[str] = frozenset()
    create_only_fields: frozenset[str] = frozenset()
    choices: dict[str, tuple] = field(default_factory=dict)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    return {c.key: c for c in model.__mapper__.columns}


def _coerce_integer(key: str, value: Any) -> int:
    # bool is an int subclass; True is not a quantity
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.lstrip("-").isdigit():
            return int(stripped)
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _coerce_numeric(key: str, value: Any, scale: int | None) -> Decimal:
    try:
        number = to_decimal(value)
    except ValueError:
        raise ValidationError(f"{key} must be a number")
    if not number.is_finite():
        raise ValidationError(f"{key} must be a finite number")
    if scale is not None and -number.as_tuple().exponent > scale:
        raise ValidationError(f"{key} allows at most {scale} decimal places")
    return number


def _coerce_value(col, value: Any):
    coltype = col.type

    if isinstance(coltype, Boolean):
        if not isinstance(value, bool):
            raise ValidationError(f"{col.key} must be true or false")
        return value

    if isinstance(coltype, Integer):
        return _coerce_integer(col.key, value)

    # Money, lens curve and diameter
    if isinstance(coltype, Numeric):
        return _coerce_numeric(col.key, value, coltype.scale)

    if isinstance(coltype, JSON):
        if not isinstance(value, dict):
            raise ValidationError(f"{col.key} must be an object")
        return value

    if isinstance(coltype, (String, Text)):
        text = str(value).strip()
        if not col.nullable and text == "":
            raise ValidationError(f"{col.key} cannot be blank")
        if isinstance(coltype, String) and coltype.length and len(text) > coltype.length:
            raise ValidationError(f"{col.key} exceeds max length {coltype.length}")
        return text

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validate and normalize a client payload for model.

    partial=False: create semantics (required_on_create enforced)
    partial=True: update semantics (only provided keys checked,
    create_only_fields rejected)

    Returns a patch dict holding only writable, coerced values.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(policy.required_on_create - payload.keys())
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)
    for key in payload:
        if key not in policy.writable_fields or key not in cols:
            raise ValidationError(f"Field not allowed: {key}")
        if partial and key in policy.create_only_fields:
            raise ValidationError(f"{key} can only be set on creation")

    patch: dict = {}
    for key, raw in payload.items():
        col = cols[key]
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{key} cannot be null")
            patch[key] = None
            continue

        value = _coerce_value(col, raw)
        allowed = policy.choices.get(key)
        if allowed is not None and value not in allowed:
            raise ValidationError(f"{key} must be one of {list(allowed)}")
        patch[key] = value

    return patch


def enforce_rules_catalog_entry(patch: dict) -> None:
    """
    Business rules for products and contact lenses that SQLAlchemy
    metadata alone does not capture.
    """
    for key in ("price", "cost"):
        if patch.get(key) is not None:
            if patch[key] < 0:
                raise ValidationError(f"{key} must be >= 0")
            if patch[key] > MAX_PRICE:
                raise ValidationError(f"{key} cannot exceed {MAX_PRICE}")

    for key in ("stock", "min_stock"):
        if patch.get(key) is not None and patch[key] < 0:
            raise ValidationError(f"{key} must be >= 0")
