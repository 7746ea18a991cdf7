# Overview: Stock mutator, manual stock adjustments and low-stock reporting.

from __future__ import annotations

import logging

from ..extensions import db
from ..exceptions import InsufficientStockError, NotFoundError, ValidationError
from ..models import Product
from ..stock_record import StockRecord
from . import subdivision_policy
from .audit_service import StockAdjustment, record_inventory_event
from .concurrency import lock_for_update, run_with_retry
"""
Stock Mutation Invariants (authoritative)

- full_packs / loose_units are written ONLY through apply_stock_change() or
  adjust_stock(); every other module reads them.
- Mutations happen inside the caller's DB transaction; this module never
  commits on behalf of a caller of apply_stock_change().
- total_units is derived, never stored.
"""

logger = logging.getLogger(__name__)

DECREMENT = "decrement"
INCREMENT = "increment"

ADJUSTMENT_MODES = ("add_packs", "add_units", "remove_packs", "set_packs")

_AUDIT_ACTION_BY_MODE = {
    "add_packs": "stock_add",
    "add_units": "stock_add",
    "remove_packs": "stock_remove",
    "set_packs": "stock_adjust",
}


def get_tenant_product(tenant_id: int, product_id: int, *, lock: bool = False) -> Product:
    query = db.session.query(Product).filter_by(id=product_id, tenant_id=tenant_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise NotFoundError(f"Product not found: {product_id}", details={"product_id": product_id})
    return product


def apply_stock_change(product: Product, quantity: int, mode: str) -> StockRecord:
    """
    Apply a quantity delta to a product's Stock Record.

    decrement: `quantity` units leave stock under the product's subdivision rule.
    increment: `quantity` units arrive as loose units and are normalized into packs.

    Raises InsufficientStockError when a decrement cannot be satisfied; the
    product is left untouched in that case.
    """
    if quantity < 0:
        raise ValidationError("quantity cannot be negative")

    before = product.stock
    if mode == DECREMENT:
        after = subdivision_policy.decrement(
            before, quantity, product.unit_type, product_name=product.name
        )
    elif mode == INCREMENT:
        after = subdivision_policy.increment(before, units=quantity)
    else:
        raise ValueError(f"unknown stock change mode {mode!r}")

    product.write_stock(after)
    db.session.flush()
    return after


def _apply_adjustment(record: StockRecord, mode: str, quantity: int, product_name: str) -> StockRecord:
    if mode == "add_packs":
        return subdivision_policy.increment(record, packs=quantity)
    if mode == "add_units":
        return subdivision_policy.increment(record, units=quantity)
    if mode == "remove_packs":
        if quantity > record.full_packs:
            raise InsufficientStockError(
                product_name,
                available=record.full_packs,
                requested=quantity,
                message=f"Cannot remove {quantity} packs. Only {record.full_packs} packs available.",
            )
        return record.with_counts(full_packs=record.full_packs - quantity)
    if mode == "set_packs":
        return record.with_counts(full_packs=quantity, loose_units=0)
    raise ValidationError(f"adjustment_type must be one of {', '.join(ADJUSTMENT_MODES)}")


def adjust_stock(
    *,
    tenant_id: int,
    actor_id: int,
    product_id: int,
    mode: str,
    quantity: int,
    reason: str | None = None,
    notes: str | None = None,
) -> Product:
    """
    Manual stock correction, always paired with an audit entry.

    Modes:
    - add_packs / add_units: restock, normalized into full packs
    - remove_packs: take whole packs out (cannot exceed full packs on hand)
    - set_packs: overwrite with `quantity` full packs and no loose units
    """
    if mode not in ADJUSTMENT_MODES:
        raise ValidationError(f"adjustment_type must be one of {', '.join(ADJUSTMENT_MODES)}")
    if quantity < 0:
        raise ValidationError("quantity cannot be negative")

    def _op():
        product = get_tenant_product(tenant_id, product_id, lock=True)
        before = product.stock
        after = _apply_adjustment(before, mode, quantity, product.name)
        product.write_stock(after)

        record_inventory_event(
            tenant_id=tenant_id,
            product_id=product.id,
            action=_AUDIT_ACTION_BY_MODE[mode],
            performed_by_id=actor_id,
            payload=StockAdjustment(
                adjustment_type=mode,
                quantity=quantity,
                reason=reason,
                notes=notes,
            ),
            previous_state=before.snapshot(),
            new_state=after.snapshot(),
        )

        db.session.commit()
        return product

    return run_with_retry(_op)


def _restock_urgency(total: int, minimum: int) -> str:
    if total == 0:
        return "critical"
    if total <= minimum * 0.3:
        return "high"
    if total <= minimum:
        return "medium"
    return "none"


def get_low_stock_products(tenant_id: int) -> dict:
    """Active products at or below their minimum stock level."""
    products = (
        db.session.query(Product)
        .filter(
            Product.tenant_id == tenant_id,
            Product.status == "active",
            Product.total_units <= Product.min_stock_level,
        )
        .order_by(Product.name.asc())
        .all()
    )

    items = []
    for product in products:
        total = product.total_units
        items.append({
            "id": product.id,
            "name": product.name,
            "sku": product.sku,
            "category": product.category,
            "unit_type": product.unit_type,
            "current_stock": total,
            "min_stock_level": product.min_stock_level,
            "needed": max(0, product.min_stock_level - total),
            "restock_urgency": _restock_urgency(total, product.min_stock_level),
        })

    return {
        "items": items,
        "summary": {
            "total_low_stock": len(items),
            "critical": sum(1 for i in items if i["restock_urgency"] == "critical"),
            "high": sum(1 for i in items if i["restock_urgency"] == "high"),
            "medium": sum(1 for i in items if i["restock_urgency"] == "medium"),
        },
    }
