from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from rxledger.time_utils import parse_iso_datetime

from .exceptions import ValidationError
from .models.sales import PAYMENT_METHODS
from .services.sales_service import SaleItem


# Largest quantity a single request may carry; keeps arithmetic well inside
# 32-bit integer columns
MAX_QUANTITY = 1_000_000

# 999,999,999 cents
MAX_AMOUNT_CENTS = 999_999_999


def coerce_int(value: Any, field: str, *, minimum: int = 0, maximum: int | None = None) -> int:
    """
    Strict integer coercion for JSON and query-string input.

    Accepts ints and plain digit strings. Rejects bools, floats, decimals and
    scientific notation.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    elif isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    else:
        raise ValidationError(f"{field} must be an integer")

    if result < minimum:
        raise ValidationError(f"{field} must be at least {minimum}")
    if maximum is not None and result > maximum:
        raise ValidationError(f"{field} cannot exceed {maximum}")
    return result


def _optional_text(payload: dict, field: str, max_length: int) -> str | None:
    value = payload.get(field)
    if value is None:
        return None
    value = str(value).strip()
    if len(value) > max_length:
        raise ValidationError(f"{field} cannot exceed {max_length} characters")
    return value or None


@dataclass(frozen=True)
class SaleRequest:
    items: list[SaleItem]
    payment_method: str
    amount_paid_cents: int
    ignore_stock: bool


def parse_sale_request(payload: dict) -> SaleRequest:
    items = payload.get("items")
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")

    parsed = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        parsed.append(SaleItem(
            product_id=coerce_int(item.get("product_id"), f"items[{index}].product_id", minimum=1),
            quantity=coerce_int(item.get("quantity"), f"items[{index}].quantity", minimum=1, maximum=MAX_QUANTITY),
        ))

    payment_method = payload.get("payment_method") or "cash"
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of {', '.join(PAYMENT_METHODS)}")

    if "amount_paid_cents" not in payload:
        raise ValidationError("amount_paid_cents is required")
    amount_paid = coerce_int(payload["amount_paid_cents"], "amount_paid_cents", maximum=MAX_AMOUNT_CENTS)

    ignore_stock = payload.get("ignore_stock", False)
    if not isinstance(ignore_stock, bool):
        raise ValidationError("ignore_stock must be a boolean")

    return SaleRequest(
        items=parsed,
        payment_method=payment_method,
        amount_paid_cents=amount_paid,
        ignore_stock=ignore_stock,
    )


@dataclass(frozen=True)
class StockAdjustmentRequest:
    product_id: int
    mode: str
    quantity: int
    reason: str | None
    notes: str | None


def parse_stock_adjustment(payload: dict) -> StockAdjustmentRequest:
    from .services.stock_service import ADJUSTMENT_MODES

    mode = payload.get("adjustment_type")
    if mode not in ADJUSTMENT_MODES:
        raise ValidationError(f"adjustment_type must be one of {', '.join(ADJUSTMENT_MODES)}")

    return StockAdjustmentRequest(
        product_id=coerce_int(payload.get("product_id"), "product_id", minimum=1),
        mode=mode,
        quantity=coerce_int(payload.get("quantity"), "quantity", maximum=MAX_QUANTITY),
        reason=_optional_text(payload, "reason", 255),
        notes=_optional_text(payload, "notes", 500),
    )


def parse_resolution(payload: dict) -> dict:
    status = payload.get("status")
    if not status:
        raise ValidationError("status is required")
    return {
        "status": status,
        "notes": _optional_text(payload, "notes", 500),
        "action": payload.get("action") or None,
    }


def parse_reconciliation_adjustment(payload: dict) -> dict:
    return {
        "adjustment_quantity": coerce_int(
            payload.get("adjustment_quantity"), "adjustment_quantity", minimum=1, maximum=MAX_QUANTITY
        ),
        "notes": _optional_text(payload, "notes", 500),
    }


def parse_page_args(args, *, default_limit: int = 20) -> tuple[int, int]:
    page = coerce_int(args.get("page", "1"), "page", minimum=1)
    limit = coerce_int(args.get("limit", str(default_limit)), "limit", minimum=1)
    return page, limit


def parse_date_arg(args, field: str):
    raw = args.get(field)
    try:
        return parse_iso_datetime(raw)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")
