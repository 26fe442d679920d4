# Overview: Flask API routes for order intake and admin accept/decline decisions.

"""Order API routes with role enforcement"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_role
from ..errors import FulfillmentError
from .. import validation
from ..services import order_service
from ..time_utils import to_utc_z


orders_bp = Blueprint("orders", __name__)


@orders_bp.post("/api/orders")
@require_auth
def create_order_route():
    """
    Persist a storefront checkout as a pending order.

    Requires: any authenticated caller
    """
    try:
        data = validation.json_object(request.get_json(silent=True))

        order = order_service.create_order(
            data.get("items"),
            user_id=data.get("user_id") or g.current_caller.id,
            total_cents=data.get("total_cents"),
            placed_at=data.get("placed_at"),
        )

        return jsonify({"order": order.to_dict()}), 201

    except FulfillmentError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/api/admin/orders")
@require_auth
@require_role("admin")
def list_orders_route():
    """Query params: status (pending|accepted|declined), limit (1..500)."""
    try:
        orders = order_service.list_orders(
            status=request.args.get("status"),
            limit=request.args.get("limit", default=100, type=int),
        )
        return jsonify({"orders": [order.to_dict() for order in orders]}), 200

    except FulfillmentError as e:
        return jsonify(e.to_dict()), e.status_code


@orders_bp.get("/api/admin/orders/<order_id>")
@require_auth
@require_role("admin")
def get_order_route(order_id: str):
    try:
        order = order_service.get_order(order_id)
        return jsonify({"order": order.to_dict()}), 200

    except FulfillmentError as e:
        return jsonify(e.to_dict()), e.status_code


@orders_bp.post("/api/admin/orders/<order_id>/accept")
@require_auth
@require_role("admin")
def accept_order_route(order_id: str):
    """
    Accept a pending order and apply stock and ledger effects.

    Idempotent: repeated calls return the terminal status with applied=false.
    """
    try:
        result = order_service.accept_order(order_id)
        return jsonify(result.to_dict()), 200

    except FulfillmentError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to accept order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/api/admin/orders/<order_id>/decline")
@require_auth
@require_role("admin")
def decline_order_route(order_id: str):
    try:
        result = order_service.decline_order(order_id)
        return jsonify({
            "order_id": result.order_id,
            "status": result.status.value,
            "decided_at": to_utc_z(result.decided_at),
            "applied": result.applied,
        }), 200

    except FulfillmentError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to decline order")
        return jsonify({"error": "Internal server error"}), 500
