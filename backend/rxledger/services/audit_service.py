# Overview: Append-only audit trail for stock-affecting actions.

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Optional

from flask import current_app

from ..extensions import db
from ..exceptions import ValidationError
from ..models import InventoryLog
from ..models.inventory import AUDIT_ACTIONS
"""
Audit Trail Invariants (authoritative)

- One InventoryLog per discrete stock-affecting operation, plus one per sale line.
- Entries are written inside the same DB transaction as the change they record.
- Never updated or deleted (enforced by ORM listeners on the model).
- details is a tagged union keyed by action: each action has exactly one
  payload dataclass below, stored with a "kind" tag.
"""


@dataclass(frozen=True)
class CatalogChange:
    kind = "catalog_change"
    fields: dict = field(default_factory=dict)


@dataclass(frozen=True)
class StockAdjustment:
    kind = "stock_adjustment"
    adjustment_type: str
    quantity: int
    reason: Optional[str] = None
    notes: Optional[str] = None
    reconciliation_id: Optional[int] = None


@dataclass(frozen=True)
class SaleLineRecorded:
    kind = "sale_line"
    sale_id: int
    receipt_number: str
    product_name: str
    quantity: int
    unit_price_cents: int
    line_total_cents: int


PAYLOAD_TYPES = {
    "create": CatalogChange,
    "update": CatalogChange,
    "delete": CatalogChange,
    "stock_add": StockAdjustment,
    "stock_remove": StockAdjustment,
    "stock_adjust": StockAdjustment,
    "sale": SaleLineRecorded,
}


def record_inventory_event(
    *,
    tenant_id: int,
    product_id: int,
    action: str,
    performed_by_id: int,
    payload,
    previous_state: Optional[dict] = None,
    new_state: Optional[dict] = None,
) -> InventoryLog:
    """
    Append one audit entry in the caller's transaction.

    The payload type must match the action; a mismatch is a programming error.
    """
    expected = PAYLOAD_TYPES.get(action)
    if expected is None:
        raise ValueError(f"unknown audit action {action!r}")
    if not isinstance(payload, expected):
        raise TypeError(f"{action} entries take a {expected.__name__} payload")

    details = asdict(payload)
    details["kind"] = payload.kind

    entry = InventoryLog(
        tenant_id=tenant_id,
        product_id=product_id,
        action=action,
        performed_by_id=performed_by_id,
        details=details,
        previous_state=previous_state,
        new_state=new_state,
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def payload_from_log(entry: InventoryLog):
    """Rebuild the typed payload of a stored entry."""
    payload_type = PAYLOAD_TYPES[entry.action]
    data = {k: v for k, v in (entry.details or {}).items() if k != "kind"}
    return payload_type(**data)


def get_stock_history(
    *,
    tenant_id: int,
    product_id: int | None = None,
    action: str | None = None,
    page: int = 1,
    limit: int | None = None,
) -> dict:
    """Newest-first audit entries for a tenant, optionally by product and action."""
    default_limit = current_app.config.get("STOCK_HISTORY_DEFAULT_LIMIT", 20)
    max_limit = current_app.config.get("STOCK_HISTORY_MAX_LIMIT", 100)

    if action is not None and action not in AUDIT_ACTIONS:
        raise ValidationError(f"action must be one of {', '.join(AUDIT_ACTIONS)}")
    if page < 1:
        raise ValidationError("page must be at least 1")
    limit = default_limit if limit is None else max(1, min(limit, max_limit))

    stmt = db.select(InventoryLog).filter(InventoryLog.tenant_id == tenant_id)
    if product_id is not None:
        stmt = stmt.filter(InventoryLog.product_id == product_id)
    if action is not None:
        stmt = stmt.filter(InventoryLog.action == action)
    stmt = stmt.order_by(InventoryLog.created_at.desc(), InventoryLog.id.desc())

    result = db.paginate(stmt, page=page, per_page=limit, error_out=False)
    return {
        "items": [entry.to_dict() for entry in result.items],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": result.total,
            "pages": result.pages,
        },
    }
