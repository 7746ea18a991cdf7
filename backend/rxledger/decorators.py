# Overview: Request decorators establishing the acting user and enforcing roles.

from functools import wraps
from flask import request, jsonify, g, current_app

from .permissions import Actor

ACTOR_ID_HEADER = "X-Actor-Id"
ACTOR_ROLE_HEADER = "X-Actor-Role"
TENANT_ID_HEADER = "X-Tenant-Id"
OVERRIDE_HEADER = "X-Actor-Override-Stock"


def _parse_positive_int(value):
    if value is None or not value.strip().isdigit():
        return None
    parsed = int(value)
    return parsed if parsed > 0 else None


def require_actor(f):
    """
    Require an authenticated actor and establish tenant context.

    The identity gateway in front of this service authenticates the request
    and forwards the actor as headers. Sets:
    - g.actor: the Actor (id, role, tenant_id, override_stock)
    - g.tenant_id: the pharmacy all queries are scoped to

    Returns 401 if any identity header is missing or malformed.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        actor_id = _parse_positive_int(request.headers.get(ACTOR_ID_HEADER))
        tenant_id = _parse_positive_int(request.headers.get(TENANT_ID_HEADER))
        role = (request.headers.get(ACTOR_ROLE_HEADER) or "").strip()

        if actor_id is None or tenant_id is None or not role:
            return jsonify({"error": "Authentication required"}), 401

        override = (request.headers.get(OVERRIDE_HEADER) or "").strip().lower() == "true"

        g.actor = Actor(id=actor_id, role=role, tenant_id=tenant_id, override_stock=override)
        g.tenant_id = tenant_id

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles):
    """Require the actor to hold one of the given roles."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_actor was called first
            if not hasattr(g, "actor"):
                return jsonify({"error": "Authentication required"}), 401

            if g.actor.role not in roles:
                current_app.logger.warning(
                    "Role %s denied on %s %s", g.actor.role, request.method, request.path
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": list(roles),
                    "message": f"Requires one of: {', '.join(roles)}",
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_stock_override_if_requested(f):
    """
    Reject ignore_stock=true unless the actor may override stock checks.

    Runs before the sale coordinator, which trusts the flag it receives.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        payload = request.get_json(silent=True) or {}
        if payload.get("ignore_stock") is True and not g.actor.can_override_stock:
            return jsonify({
                "error": "Only pharmacy owners or authorized attendants can override stock checks",
            }), 403
        return f(*args, **kwargs)

    return decorated_function
