# Overview: Flask API routes for the reconciliation ledger; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..exceptions import LedgerError
from ..services import reconciliation_service
from ..validation import parse_resolution, parse_reconciliation_adjustment
from ..decorators import require_actor, require_role
from ..permissions import OWNER_ROLES


reconciliations_bp = Blueprint("reconciliations", __name__, url_prefix="/api/reconciliations")


@reconciliations_bp.get("")
@require_actor
@require_role(*OWNER_ROLES)
def list_reconciliations_route():
    """List reconciliation cases, optionally filtered by ?status=."""
    try:
        cases = reconciliation_service.list_cases(g.tenant_id, request.args.get("status") or None)
        return jsonify({"items": [c.to_dict() for c in cases], "count": len(cases)}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@reconciliations_bp.get("/stats")
@require_actor
@require_role(*OWNER_ROLES)
def reconciliation_stats_route():
    return jsonify(reconciliation_service.get_stats(g.tenant_id)), 200


@reconciliations_bp.patch("/<int:case_id>")
@require_actor
@require_role(*OWNER_ROLES)
def resolve_reconciliation_route(case_id: int):
    """
    Move a case along its status machine.

    Body: status, notes, action (stock_adjusted | written_off | customer_return | other)
    """
    try:
        data = parse_resolution(request.get_json(silent=True) or {})
        case = reconciliation_service.resolve_case(
            tenant_id=g.tenant_id,
            actor_id=g.actor.id,
            case_id=case_id,
            **data,
        )
        return jsonify({"reconciliation": case.to_dict()}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update reconciliation")
        return jsonify({"error": "Internal server error"}), 500


@reconciliations_bp.post("/<int:case_id>/adjust")
@require_actor
@require_role(*OWNER_ROLES)
def adjust_from_reconciliation_route(case_id: int):
    """
    Restock the oversold product and close the case as adjusted.

    Body: adjustment_quantity (units), notes
    """
    try:
        data = parse_reconciliation_adjustment(request.get_json(silent=True) or {})
        case, product = reconciliation_service.adjust_from_case(
            tenant_id=g.tenant_id,
            actor_id=g.actor.id,
            case_id=case_id,
            **data,
        )
        return jsonify({
            "reconciliation": case.to_dict(),
            "updated_stock": product.to_dict()["stock"],
        }), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to adjust stock from reconciliation")
        return jsonify({"error": "Internal server error"}), 500
