# Overview: Catalog registration for products the stock ledger operates on.

from __future__ import annotations

from ..extensions import db
from ..exceptions import ValidationError
from ..models import Product
from ..models.inventory import PRODUCT_STATUSES
from . import subdivision_policy
from .audit_service import CatalogChange, record_inventory_event
from .concurrency import run_with_retry


def _non_negative_int(data: dict, key: str, default: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{key} must be a non-negative integer")
    return value


def create_product(*, tenant_id: int, actor_id: int, data: dict) -> Product:
    """
    Register a product with its pricing and opening stock.

    Opening loose units are normalized into packs the same way a restock is.
    Appends a `create` audit entry.
    """
    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationError("name is required")
    if len(name) > 100:
        raise ValidationError("name cannot exceed 100 characters")

    status = data.get("status", "active")
    if status not in PRODUCT_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(PRODUCT_STATUSES)}")

    units_per_pack = _non_negative_int(data, "units_per_pack", 1)
    if units_per_pack < 1:
        raise ValidationError("units_per_pack must be at least 1")

    cost = _non_negative_int(data, "cost_per_pack_cents", 0)
    price = _non_negative_int(data, "selling_price_per_pack_cents", 0)
    if price < cost:
        raise ValidationError("Selling price must be greater than or equal to cost price")

    sku = data.get("sku")
    product = Product(
        tenant_id=tenant_id,
        name=name,
        sku=sku.strip().upper() if sku else None,
        category=data.get("category"),
        status=status,
        unit_type=data.get("unit_type") or "Tablets",
        cost_per_pack_cents=cost,
        selling_price_per_pack_cents=price,
        units_per_pack=units_per_pack,
        full_packs=0,
        loose_units=0,
        min_stock_level=_non_negative_int(data, "min_stock_level", 10),
        max_stock_level=_non_negative_int(data, "max_stock_level", 100),
        created_by_id=actor_id,
    )
    opening = subdivision_policy.increment(
        product.stock,
        packs=_non_negative_int(data, "full_packs", 0),
        units=_non_negative_int(data, "loose_units", 0),
    )
    product.write_stock(opening)

    def _op():
        db.session.add(product)
        db.session.flush()
        record_inventory_event(
            tenant_id=tenant_id,
            product_id=product.id,
            action="create",
            performed_by_id=actor_id,
            payload=CatalogChange(fields={
                "name": product.name,
                "sku": product.sku,
                "unit_type": product.unit_type,
                "units_per_pack": product.units_per_pack,
                "selling_price_per_pack_cents": product.selling_price_per_pack_cents,
            }),
            new_state=opening.snapshot(),
        )
        db.session.commit()
        return product

    return run_with_retry(_op)
