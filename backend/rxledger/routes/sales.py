# Overview: Flask API routes for point-of-sale checkout; parses input and returns JSON responses.

# backend/rxledger/routes/sales.py
"""POS sale routes with role enforcement"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import sales_service
from ..exceptions import LedgerError
from ..validation import parse_sale_request, parse_page_args, parse_date_arg
from ..decorators import require_actor, require_role, require_stock_override_if_requested
from ..permissions import POS_ROLES


sales_bp = Blueprint("sales", __name__, url_prefix="/api/pos/sales")


@sales_bp.post("")
@require_actor
@require_role(*POS_ROLES)
@require_stock_override_if_requested
def process_sale_route():
    """
    Process a checkout: price the basket, move stock, record the sale.

    Available to: pharmacy_owner, attendant
    ignore_stock=true additionally requires the override permission
    (always held by owners).
    """
    try:
        sale_request = parse_sale_request(request.get_json(silent=True) or {})

        result = sales_service.process_sale(
            tenant_id=g.tenant_id,
            actor_id=g.actor.id,
            items=sale_request.items,
            payment_method=sale_request.payment_method,
            amount_paid_cents=sale_request.amount_paid_cents,
            ignore_stock=sale_request.ignore_stock,
            device_info={
                "user_agent": request.headers.get("User-Agent"),
                "ip": request.remote_addr,
                "location": request.headers.get("CF-IPCountry") or "Unknown",
            },
        )

        return jsonify(result.to_dict()), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to process sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_actor
@require_role(*POS_ROLES)
def list_sales_route():
    """
    List completed sales, newest first.

    Query: page, limit, start_date, end_date (ISO-8601, inclusive)
    """
    try:
        page, limit = parse_page_args(request.args)
        start = parse_date_arg(request.args, "start_date")
        end = parse_date_arg(request.args, "end_date")

        return jsonify(sales_service.list_sales(
            tenant_id=g.tenant_id,
            page=page,
            limit=limit,
            start=start,
            end=end,
        )), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@sales_bp.get("/<int:sale_id>")
@require_actor
@require_role(*POS_ROLES)
def get_sale_route(sale_id: int):
    """Get one sale with its line items."""
    try:
        sale = sales_service.get_sale(g.tenant_id, sale_id)
        return jsonify({"sale": sale.to_dict()}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
