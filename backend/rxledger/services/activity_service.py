# Overview: Staff activity feed entries written after the action they describe.

from __future__ import annotations

import logging

from ..extensions import db
from ..exceptions import ValidationError
from ..models import StaffActivity
from ..models.activity import STAFF_ACTIONS

logger = logging.getLogger(__name__)


def record_activity(*, tenant_id: int, staff_id: int, action: str, details=None, device_info=None) -> StaffActivity:
    """Add one activity row; the caller owns the commit."""
    if action not in STAFF_ACTIONS:
        raise ValidationError(f"action must be one of {', '.join(STAFF_ACTIONS)}")

    entry = StaffActivity(
        tenant_id=tenant_id,
        staff_id=staff_id,
        action=action,
        details=details or {},
        device_info=device_info or {},
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def record_sale_activity(sale, device_info=None) -> int:
    """sale_completed entry for a committed sale. Returns the activity id."""
    entry = record_activity(
        tenant_id=sale.tenant_id,
        staff_id=sale.attendant_id,
        action="sale_completed",
        details={
            "sale_id": sale.id,
            "receipt_number": sale.receipt_number,
            "items": [
                {
                    "product_id": line.product_id,
                    "product_name": line.product_name,
                    "quantity": line.quantity,
                    "unit_price_cents": line.unit_price_cents,
                    "line_total_cents": line.line_total_cents,
                }
                for line in sale.lines
            ],
            "total_amount_cents": sale.total_amount_cents,
            "amount_paid_cents": sale.amount_paid_cents,
            "change_due_cents": sale.change_due_cents,
            "payment_method": sale.payment_method,
        },
        device_info=device_info,
    )
    logger.debug("Recorded sale_completed activity %s for sale %s", entry.id, sale.receipt_number)
    return entry.id
