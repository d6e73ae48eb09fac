# Overview: Model-driven validation of incoming JSON payloads.

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .models import CartLine, InventoryMovement, InventoryRecord, Order


MAX_CART_QUANTITY = 10_000
MAX_STOCK_QUANTITY = 1_000_000


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: payload keys clients are allowed to send (security boundary)
    - required_on_create: payload keys required when partial=False
    - aliases: payload key -> model column key, for API names that differ
      from storage names (e.g. delivery_address -> shipping_address)
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    aliases: dict[str, str] = field(default_factory=dict)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(name: str, col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{name} must be an integer")
            if 'e' in stripped.lower():
                raise ValidationError(f"{name} must be a plain integer (scientific notation not allowed)")
            if '.' in stripped:
                raise ValidationError(f"{name} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{name} must be an integer")
        if isinstance(value, float):
            raise ValidationError(f"{name} must be an integer, not a decimal")
        raise ValidationError(f"{name} must be an integer")

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in {"true", "false", "1", "0"}:
            return value.strip().lower() in {"true", "1"}
        raise ValidationError(f"{name} must be a boolean")

    if isinstance(coltype, (String, Text)):
        if not isinstance(value, (str, int, float)) or isinstance(value, bool):
            raise ValidationError(f"{name} must be a string")
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool = False,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned dict keyed by the payload names.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) is None)
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                details={"missing": missing},
            )

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if policy.aliases.get(k, k) not in cols:
            raise ValidationError(f"Unknown field: {k}")

    cleaned: dict = {}

    for k, raw in payload.items():
        col = cols[policy.aliases.get(k, k)]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            cleaned[k] = None
            continue

        val = _coerce_value(k, col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        cleaned[k] = val

    return cleaned


CART_ADD_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "quantity", "saved_for_later"},
    required_on_create={"product_id"},
)

CART_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"quantity"},
    required_on_create={"quantity"},
)

ORDER_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"delivery_address", "delivery_phone", "notes"},
    required_on_create={"delivery_address", "delivery_phone"},
    aliases={"delivery_address": "shipping_address"},
)

ORDER_STATUS_POLICY = ModelValidationPolicy(
    writable_fields={"status"},
    required_on_create={"status"},
)

STOCK_CHANGE_POLICY = ModelValidationPolicy(
    writable_fields={"warehouse_id", "quantity", "notes"},
    required_on_create={"warehouse_id", "quantity"},
)

THRESHOLD_POLICY = ModelValidationPolicy(
    writable_fields={"warehouse_id", "threshold"},
    required_on_create={"warehouse_id", "threshold"},
    aliases={"threshold": "low_stock_threshold"},
)


def validate_cart_add(payload: dict) -> dict:
    data = validate_payload(model=CartLine, payload=payload, policy=CART_ADD_POLICY)
    data.setdefault("quantity", 1)
    data.setdefault("saved_for_later", False)
    enforce_rules_cart_quantity(data)
    return data


def validate_cart_update(payload: dict) -> dict:
    data = validate_payload(model=CartLine, payload=payload, policy=CART_UPDATE_POLICY)
    enforce_rules_cart_quantity(data)
    return data


def validate_order_create(payload: dict) -> dict:
    return validate_payload(model=Order, payload=payload, policy=ORDER_CREATE_POLICY)


def validate_order_status(payload: dict) -> dict:
    return validate_payload(model=Order, payload=payload, policy=ORDER_STATUS_POLICY)


def validate_add_stock(payload: dict) -> dict:
    data = validate_payload(model=InventoryMovement, payload=payload, policy=STOCK_CHANGE_POLICY)
    enforce_rules_add_stock(data)
    return data


def validate_adjust_stock(payload: dict) -> dict:
    data = validate_payload(model=InventoryMovement, payload=payload, policy=STOCK_CHANGE_POLICY)
    enforce_rules_adjust_stock(data)
    return data


def validate_threshold(payload: dict) -> dict:
    data = validate_payload(model=InventoryRecord, payload=payload, policy=THRESHOLD_POLICY)
    enforce_rules_threshold(data)
    return data


def enforce_rules_cart_quantity(data: dict) -> None:
    qty = data.get("quantity")
    if qty is None or qty < 1:
        raise ValidationError("quantity must be >= 1")
    if qty > MAX_CART_QUANTITY:
        raise ValidationError(f"quantity cannot exceed {MAX_CART_QUANTITY}")


def enforce_rules_add_stock(data: dict) -> None:
    # Receiving requires qty > 0
    qty = data.get("quantity")
    if qty is None or qty <= 0:
        raise ValidationError("quantity must be > 0")
    if qty > MAX_STOCK_QUANTITY:
        raise ValidationError(f"quantity cannot exceed {MAX_STOCK_QUANTITY}")


def enforce_rules_adjust_stock(data: dict) -> None:
    # Adjustments are signed but never zero
    qty = data.get("quantity")
    if qty is None or qty == 0:
        raise ValidationError("quantity must be non-zero for an adjustment")
    if abs(qty) > MAX_STOCK_QUANTITY:
        raise ValidationError(f"quantity cannot exceed {MAX_STOCK_QUANTITY} in magnitude")


def enforce_rules_threshold(data: dict) -> None:
    threshold = data.get("threshold")
    if threshold is None or threshold < 0:
        raise ValidationError("threshold must be >= 0")


_INT_ARG_RE = re.compile(r"-?[0-9]+")


def parse_int_arg(name: str, raw: str | None, default: int) -> int:
    """Strict integer query-string parsing (blank -> default)."""
    if raw is None or raw.strip() == "":
        return default
    stripped = raw.strip()
    if not _INT_ARG_RE.fullmatch(stripped):
        raise ValidationError(f"{name} must be an integer")
    return int(stripped)


def parse_bool_arg(raw: str | None) -> bool:
    return bool(raw) and raw.strip().lower() in {"1", "true", "yes", "on"}
