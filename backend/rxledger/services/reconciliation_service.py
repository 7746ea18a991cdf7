"""
Reconciliation Ledger - tracking and resolving oversold stock

WHY: An override sale is allowed to sell more than is on hand. Every line
that did so leaves a shortfall that somebody has to explain: a miscount, a
delivery never booked in, a write-off. Each shortfall becomes one case here.

State machine (forward-only):
    pending -> investigating -> resolved | adjusted
    pending -> resolved | adjusted
resolved and adjusted are terminal.
"""

from __future__ import annotations

import logging

from sqlalchemy import func

from ..extensions import db
from ..exceptions import InvalidTransitionError, NotFoundError, ValidationError
from ..models import StockReconciliation
from ..models.reconciliation import RECONCILIATION_ACTIONS, RECONCILIATION_STATUSES
from rxledger.time_utils import utcnow
from .audit_service import StockAdjustment, record_inventory_event
from .concurrency import lock_for_update, run_with_retry
from .stock_service import INCREMENT, apply_stock_change, get_tenant_product

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({"resolved", "adjusted"})

ALLOWED_TRANSITIONS = {
    "pending": frozenset({"investigating", "resolved", "adjusted"}),
    "investigating": frozenset({"resolved", "adjusted"}),
    "resolved": frozenset(),
    "adjusted": frozenset(),
}

MAX_NOTES_LENGTH = 500


def open_cases_for_sale(sale, stock_warnings: list[dict]) -> list[int]:
    """
    Create one pending case per oversold sale line.

    Warnings without a positive deficit never produce a case. Runs after the
    sale has committed; the caller owns the commit.
    """
    case_ids = []
    for warning in stock_warnings:
        if warning.get("deficit", 0) <= 0:
            continue

        case = StockReconciliation(
            tenant_id=sale.tenant_id,
            sale_id=sale.id,
            product_id=warning["product_id"],
            attendant_id=sale.attendant_id,
            product_name=warning["product_name"],
            quantity_sold=warning["requested"],
            available_stock=warning["available"],
            deficit=warning["deficit"],
            status="pending",
            created_by_id=sale.created_by_id,
        )
        db.session.add(case)
        db.session.flush()
        case_ids.append(case.id)

    if case_ids:
        logger.info("Opened %s reconciliation case(s) for sale %s", len(case_ids), sale.receipt_number)
    return case_ids


def _get_case(tenant_id: int, case_id: int, *, lock: bool = False) -> StockReconciliation:
    query = db.session.query(StockReconciliation).filter_by(id=case_id, tenant_id=tenant_id)
    if lock:
        query = lock_for_update(query)
    case = query.first()
    if case is None:
        raise NotFoundError("Reconciliation record not found", details={"id": case_id})
    return case


def _clean_notes(notes: str | None) -> str | None:
    if notes is None:
        return None
    notes = str(notes).strip()
    if len(notes) > MAX_NOTES_LENGTH:
        raise ValidationError(f"notes cannot exceed {MAX_NOTES_LENGTH} characters")
    return notes or None


def list_cases(tenant_id: int, status: str | None = None) -> list[StockReconciliation]:
    if status is not None and status not in RECONCILIATION_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(RECONCILIATION_STATUSES)}")

    query = db.session.query(StockReconciliation).filter_by(tenant_id=tenant_id)
    if status is not None:
        query = query.filter_by(status=status)
    return query.order_by(StockReconciliation.created_at.desc(), StockReconciliation.id.desc()).all()


def get_stats(tenant_id: int) -> dict:
    """Case counts and summed deficits grouped by status."""
    rows = (
        db.session.query(
            StockReconciliation.status,
            func.count(StockReconciliation.id),
            func.coalesce(func.sum(StockReconciliation.deficit), 0),
        )
        .filter(StockReconciliation.tenant_id == tenant_id)
        .group_by(StockReconciliation.status)
        .all()
    )

    by_status = {status: {"count": 0, "total_deficit": 0} for status in RECONCILIATION_STATUSES}
    for status, count, total_deficit in rows:
        by_status[status] = {"count": int(count), "total_deficit": int(total_deficit)}

    return {
        "pending": by_status["pending"]["count"],
        "by_status": by_status,
        "total_cases": sum(v["count"] for v in by_status.values()),
        "total_deficit": sum(v["total_deficit"] for v in by_status.values()),
    }


def _transition(case: StockReconciliation, status: str) -> None:
    if status not in ALLOWED_TRANSITIONS.get(case.status, frozenset()):
        raise InvalidTransitionError(
            f"Cannot move reconciliation from {case.status} to {status}",
            details={"id": case.id, "current_status": case.status, "requested_status": status},
        )
    case.status = status


def resolve_case(
    *,
    tenant_id: int,
    actor_id: int,
    case_id: int,
    status: str,
    notes: str | None = None,
    action: str | None = None,
) -> StockReconciliation:
    """
    Status/metadata update only; stock is not touched.

    resolved and adjusted stamp the resolver and time.
    """
    if status not in RECONCILIATION_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(RECONCILIATION_STATUSES)}")
    if action is not None and action not in RECONCILIATION_ACTIONS:
        raise ValidationError(f"action must be one of {', '.join(RECONCILIATION_ACTIONS)}")
    notes = _clean_notes(notes)

    def _op():
        case = _get_case(tenant_id, case_id, lock=True)
        _transition(case, status)

        if notes is not None:
            case.resolution_notes = notes
        if action is not None:
            case.action = action
        if status in TERMINAL_STATUSES:
            case.resolved_by_id = actor_id
            case.resolved_at = utcnow()

        db.session.commit()
        return case

    return run_with_retry(_op)


def adjust_from_case(
    *,
    tenant_id: int,
    actor_id: int,
    case_id: int,
    adjustment_quantity: int,
    notes: str | None = None,
):
    """
    Correct stock for a pending case and close it as adjusted.

    The adjustment arrives as loose units (normalized into packs), is audited
    as stock_adjust with a back-reference to the case, and the case moves to
    adjusted, all in one transaction.

    Returns (case, product).
    """
    if isinstance(adjustment_quantity, bool) or not isinstance(adjustment_quantity, int) or adjustment_quantity < 1:
        raise ValidationError("adjustment_quantity must be a positive integer")
    notes = _clean_notes(notes)

    def _op():
        case = (
            lock_for_update(db.session.query(StockReconciliation))
            .filter_by(id=case_id, tenant_id=tenant_id, status="pending")
            .first()
        )
        if case is None:
            raise NotFoundError(
                "Reconciliation record not found or already processed",
                details={"id": case_id},
            )

        product = get_tenant_product(tenant_id, case.product_id, lock=True)
        before = product.stock
        after = apply_stock_change(product, adjustment_quantity, INCREMENT)

        record_inventory_event(
            tenant_id=tenant_id,
            product_id=product.id,
            action="stock_adjust",
            performed_by_id=actor_id,
            payload=StockAdjustment(
                adjustment_type="reconciliation",
                quantity=adjustment_quantity,
                reason=f"Reconciliation for sale {case.sale.receipt_number}",
                notes=notes,
                reconciliation_id=case.id,
            ),
            previous_state=before.snapshot(),
            new_state=after.snapshot(),
        )

        _transition(case, "adjusted")
        case.action = "stock_adjusted"
        case.resolution_notes = notes
        case.resolved_by_id = actor_id
        case.resolved_at = utcnow()

        db.session.commit()
        logger.info(
            "Reconciliation %s adjusted: +%s units for %s",
            case.id, adjustment_quantity, product.name,
        )
        return case, product

    return run_with_retry(_op)
