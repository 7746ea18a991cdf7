# backend/rxledger/routes/system.py
"""
Liveness endpoint for the ledger.

Reports database reachability plus the size of the open reconciliation
backlog across all pharmacies, the one number operators watch.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Product, StockReconciliation
from rxledger.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_ledger_database() -> dict:
    started = time.perf_counter()
    try:
        details = {
            "products": db.session.query(Product).count(),
            "pending_reconciliations": (
                db.session.query(StockReconciliation).filter_by(status="pending").count()
            ),
        }
        status = "healthy"
    except Exception:
        current_app.logger.exception("Ledger database check failed")
        details = None
        status = "unhealthy"

    check = {"status": status, "latency_ms": round((time.perf_counter() - started) * 1000, 2)}
    if details is None:
        check["error"] = "Database error"
    else:
        check["details"] = details
    return check


@system_bp.get("/health")
def health():
    """200 when the ledger database answers, 503 otherwise."""
    database = check_ledger_database()

    return {
        "status": database["status"],
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database},
    }, 503 if database["status"] == "unhealthy" else 200
