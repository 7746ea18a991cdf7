"""
Sale Transaction Coordinator - one checkout, one atomic stock mutation

WHY: A sale is the only path through which stock leaves the pharmacy in bulk.
Every line's stock decrement, the Sale document and its audit entries commit
together or not at all.

Flow (per call):
1. Load each product in input order (row-locked); missing -> NotFound,
   not active -> InactiveProduct.
2. Price the line from the pack price at sale time.
3. Strict mode: shortfall rejects the whole sale. Override mode: shortfall is
   recorded as a stock warning and the decrement is attempted best-effort.
4. Reject underpayment; compute change.
5. Persist Sale + one audit entry per line, commit.
6. After commit (best-effort): open one reconciliation case per oversold line,
   then append the sale_completed staff activity entry.
"""

from __future__ import annotations

import logging
import secrets
import string
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..exceptions import (
    InactiveProductError,
    InsufficientPaymentError,
    InsufficientStockError,
    NotFoundError,
    TransientPersistenceError,
    ValidationError,
)
from ..models import Sale, SaleLine
from ..models.sales import PAYMENT_METHODS
from rxledger.time_utils import receipt_timestamp, utcnow
from . import activity_service, reconciliation_service, subdivision_policy
from .audit_service import SaleLineRecorded, record_inventory_event
from .concurrency import run_with_retry
from .post_commit import PostCommitTasks
from .stock_service import DECREMENT, apply_stock_change, get_tenant_product

logger = logging.getLogger(__name__)

_RECEIPT_ALPHABET = string.ascii_uppercase + string.digits


@dataclass
class SaleItem:
    product_id: int
    quantity: int


@dataclass
class SaleResult:
    sale: Sale
    change_due_cents: int
    warnings: list[dict] = field(default_factory=list)
    reconciliation_ids: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = {
            "sale": self.sale.to_dict(),
            "change_due_cents": self.change_due_cents,
        }
        if self.warnings:
            data["warnings"] = {
                "message": "Stock levels exceeded. Please reconcile inventory.",
                "items": self.warnings,
            }
        return data


def generate_receipt_number(prefix: str | None = None) -> str:
    """
    Timestamp plus a short random suffix.

    Best-effort identifier: there is no retry loop, a same-second collision
    within a tenant is rejected by the unique constraint.
    """
    if prefix is None:
        prefix = current_app.config.get("RECEIPT_PREFIX", "RX")
    suffix = "".join(secrets.choice(_RECEIPT_ALPHABET) for _ in range(4))
    return f"{prefix}-{receipt_timestamp(utcnow())}-{suffix}"


def line_total_cents(price_per_pack_cents: int, units_per_pack: int, quantity: int) -> int:
    """Line total from the pack price, rounded half-up to the cent."""
    total = Decimal(price_per_pack_cents) * quantity / Decimal(units_per_pack)
    return int(total.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def unit_price_cents(price_per_pack_cents: int, units_per_pack: int) -> int:
    return line_total_cents(price_per_pack_cents, units_per_pack, 1)


def _stock_warning(product, requested: int, available: int) -> dict:
    return {
        "product_id": product.id,
        "product_name": product.name,
        "requested": requested,
        "available": available,
        "deficit": requested - available,
    }


def _is_receipt_collision(exc: IntegrityError) -> bool:
    # PostgreSQL names the constraint; SQLite names the columns
    message = str(exc.orig)
    if "uq_sales_tenant_receipt" in message:
        return True
    return "UNIQUE constraint failed" in message and "sales.receipt_number" in message


def _validate_request(items, payment_method, amount_paid_cents) -> list[SaleItem]:
    if not items:
        raise ValidationError("items must be a non-empty list")
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of {', '.join(PAYMENT_METHODS)}")
    if isinstance(amount_paid_cents, bool) or not isinstance(amount_paid_cents, int) or amount_paid_cents < 0:
        raise ValidationError("amount_paid_cents must be a non-negative integer")

    cleaned = []
    for index, item in enumerate(items):
        if isinstance(item, dict):
            item = SaleItem(product_id=item.get("product_id"), quantity=item.get("quantity"))
        for name in ("product_id", "quantity"):
            value = getattr(item, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValidationError(
                    f"items[{index}].{name} must be a positive integer",
                    details={"index": index},
                )
        cleaned.append(item)
    return cleaned


def process_sale(
    *,
    tenant_id: int,
    actor_id: int,
    items,
    payment_method: str = "cash",
    amount_paid_cents: int,
    ignore_stock: bool = False,
    device_info: dict | None = None,
) -> SaleResult:
    """
    Run one checkout as a single all-or-nothing transaction.

    ignore_stock must already be authorized by the caller; it is trusted here.
    device_info only feeds the staff activity entry.
    """
    sale_items = _validate_request(items, payment_method, amount_paid_cents)
    ignore_stock = bool(ignore_stock)

    def _op():
        total_cents = 0
        lines: list[SaleLine] = []
        stock_warnings: list[dict] = []

        for line_number, item in enumerate(sale_items, start=1):
            product = get_tenant_product(tenant_id, item.product_id, lock=True)
            if product.status != "active":
                raise InactiveProductError(
                    f"Product {product.name} is not active",
                    details={"product_id": product.id, "status": product.status},
                )

            line_total = line_total_cents(
                product.selling_price_per_pack_cents, product.units_per_pack, item.quantity
            )
            total_cents += line_total

            lines.append(SaleLine(
                line_number=line_number,
                product_id=product.id,
                product_name=product.name,
                unit_type=product.unit_type,
                quantity=item.quantity,
                unit_price_cents=unit_price_cents(
                    product.selling_price_per_pack_cents, product.units_per_pack
                ),
                line_total_cents=line_total,
            ))

            available = product.total_units
            if not ignore_stock:
                if item.quantity > available:
                    raise InsufficientStockError(product.name, available=available, requested=item.quantity)
                apply_stock_change(product, item.quantity, DECREMENT)
                continue

            short = item.quantity > available
            if short:
                stock_warnings.append(_stock_warning(product, item.quantity, available))
            try:
                apply_stock_change(product, item.quantity, DECREMENT)
            except InsufficientStockError as exc:
                logger.warning(
                    "Override sale left stock for %s unchanged: %s", product.name, exc.message
                )
                if not short:
                    # Enough units on hand, but not in a shape the whole-unit rule can take
                    stock_warnings.append(_stock_warning(
                        product,
                        item.quantity,
                        subdivision_policy.fulfillable(product.stock, product.unit_type),
                    ))

        if amount_paid_cents < total_cents:
            raise InsufficientPaymentError(total_cents, amount_paid_cents)

        change_due = amount_paid_cents - total_cents
        sale = Sale(
            tenant_id=tenant_id,
            receipt_number=generate_receipt_number(),
            attendant_id=actor_id,
            created_by_id=actor_id,
            subtotal_cents=total_cents,
            total_amount_cents=total_cents,
            amount_paid_cents=amount_paid_cents,
            change_due_cents=change_due,
            payment_method=payment_method,
            status="completed",
            ignore_stock=ignore_stock,
            stock_warnings=stock_warnings,
        )
        sale.lines = lines
        db.session.add(sale)
        db.session.flush()

        for line in lines:
            record_inventory_event(
                tenant_id=tenant_id,
                product_id=line.product_id,
                action="sale",
                performed_by_id=actor_id,
                payload=SaleLineRecorded(
                    sale_id=sale.id,
                    receipt_number=sale.receipt_number,
                    product_name=line.product_name,
                    quantity=line.quantity,
                    unit_price_cents=line.unit_price_cents,
                    line_total_cents=line.line_total_cents,
                ),
            )

        db.session.commit()
        return sale, change_due, stock_warnings

    try:
        sale, change_due, stock_warnings = run_with_retry(_op)
    except IntegrityError as exc:
        if not _is_receipt_collision(exc):
            raise
        raise TransientPersistenceError(
            "Sale could not be recorded (receipt number collision); retry the request",
        ) from exc
    logger.info(
        "Sale %s completed for tenant %s (%s line(s), %s warning(s))",
        sale.receipt_number, tenant_id, len(sale_items), len(stock_warnings),
    )

    result = SaleResult(sale=sale, change_due_cents=change_due, warnings=stock_warnings)

    after_commit = PostCommitTasks()
    if any(w["deficit"] > 0 for w in stock_warnings):
        after_commit.add(
            "reconciliation_cases",
            reconciliation_service.open_cases_for_sale,
            sale,
            stock_warnings,
        )
    after_commit.add("sale_activity", activity_service.record_sale_activity, sale, device_info)
    after_commit.run()

    result.reconciliation_ids = after_commit.results.get("reconciliation_cases", [])
    return result


def get_sale(tenant_id: int, sale_id: int) -> Sale:
    sale = db.session.query(Sale).filter_by(id=sale_id, tenant_id=tenant_id).first()
    if sale is None:
        raise NotFoundError("Sale not found", details={"id": sale_id})
    return sale


def list_sales(
    *,
    tenant_id: int,
    page: int = 1,
    limit: int = 20,
    start=None,
    end=None,
    status: str = "completed",
) -> dict:
    """Newest-first completed sales, optionally within [start, end]."""
    if page < 1:
        raise ValidationError("page must be at least 1")
    limit = max(1, min(limit, 100))

    stmt = db.select(Sale).filter(Sale.tenant_id == tenant_id, Sale.status == status)
    if start is not None:
        stmt = stmt.filter(Sale.created_at >= start)
    if end is not None:
        stmt = stmt.filter(Sale.created_at <= end)
    stmt = stmt.order_by(Sale.created_at.desc(), Sale.id.desc())

    result = db.paginate(stmt, page=page, per_page=limit, error_out=False)
    return {
        "items": [sale.to_dict(include_lines=False) for sale in result.items],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": result.total,
            "pages": result.pages,
        },
    }
