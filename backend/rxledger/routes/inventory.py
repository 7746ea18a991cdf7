# backend/rxledger/routes/inventory.py
"""
Stock management routes.

SECURITY: All routes require an actor with the pharmacy_owner role.
- stock-adjustment: manual correction, always audited
- stock-history: paginated audit trail
- low-stock: reorder report
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..exceptions import LedgerError
from ..services import stock_service, audit_service
from ..validation import parse_stock_adjustment, parse_page_args, coerce_int
from ..decorators import require_actor, require_role
from ..permissions import OWNER_ROLES


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.post("/stock-adjustment")
@require_actor
@require_role(*OWNER_ROLES)
def adjust_stock_route():
    """
    Adjust stock levels.

    Body: product_id, adjustment_type (add_packs | add_units | remove_packs | set_packs),
    quantity, reason, notes
    """
    try:
        adjustment = parse_stock_adjustment(request.get_json(silent=True) or {})

        product = stock_service.adjust_stock(
            tenant_id=g.tenant_id,
            actor_id=g.actor.id,
            product_id=adjustment.product_id,
            mode=adjustment.mode,
            quantity=adjustment.quantity,
            reason=adjustment.reason,
            notes=adjustment.notes,
        )

        return jsonify({
            "product": {
                "id": product.id,
                "name": product.name,
                "stock": product.to_dict()["stock"],
            },
            "adjustment": {
                "type": adjustment.mode,
                "quantity": adjustment.quantity,
                "reason": adjustment.reason,
            },
        }), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/stock-history")
@require_actor
@require_role(*OWNER_ROLES)
def stock_history_route():
    """
    Stock movement history, newest first.

    Query: product_id, action, page, limit
    """
    try:
        page, limit = parse_page_args(
            request.args,
            default_limit=current_app.config.get("STOCK_HISTORY_DEFAULT_LIMIT", 20),
        )
        product_id = request.args.get("product_id")
        if product_id is not None:
            product_id = coerce_int(product_id, "product_id", minimum=1)

        return jsonify(audit_service.get_stock_history(
            tenant_id=g.tenant_id,
            product_id=product_id,
            action=request.args.get("action") or None,
            page=page,
            limit=limit,
        )), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@inventory_bp.get("/low-stock")
@require_actor
@require_role(*OWNER_ROLES)
def low_stock_route():
    """Active products at or below their minimum stock level."""
    return jsonify(stock_service.get_low_stock_products(g.tenant_id)), 200
