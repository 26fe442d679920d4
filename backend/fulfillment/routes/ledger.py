# Overview: Flask API routes for direct sales, reverts, and raw ledger reads.

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_auth, require_role
from ..errors import FulfillmentError
from .. import validation
from ..services import balance_service, direct_sale_service, revert_service


ledger_bp = Blueprint("ledger", __name__, url_prefix="/api/admin")


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


@ledger_bp.post("/sales")
@require_auth
@require_role("admin")
def record_direct_sale_route():
    """
    Record an operator-entered sale without an order.

    Body: {product_id, selling_price_cents, quantity, size?}
    """
    try:
        data = validation.json_object(request.get_json(silent=True))

        receipt = direct_sale_service.record_direct_sale(
            data.get("product_id"),
            data.get("selling_price_cents"),
            data.get("quantity"),
            size=data.get("size"),
        )

        return jsonify(receipt.to_dict()), 201

    except FulfillmentError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record direct sale")
        return jsonify({"error": "Internal server error"}), 500


@ledger_bp.get("/sales/<int:sale_id>")
@require_auth
@require_role("admin")
def get_sale_route(sale_id: int):
    try:
        return jsonify(balance_service.get_sale(sale_id)), 200

    except FulfillmentError as e:
        return jsonify(e.to_dict()), e.status_code


@ledger_bp.get("/products/<product_id>/sales")
@require_auth
@require_role("admin")
def list_product_sales_route(product_id: str):
    sales = balance_service.list_sales(
        product_id,
        include_deleted=_truthy(request.args.get("include_deleted")),
        limit=request.args.get("limit", default=100, type=int),
    )
    return jsonify({"product_id": product_id, "sales": [sale.to_dict() for sale in sales]}), 200


@ledger_bp.post("/transactions/revert")
@require_auth
@require_role("admin")
def revert_transaction_route():
    """
    Revert one sale by transaction hash.

    Body: {transaction_hash, reason?}
    """
    try:
        data = validation.json_object(request.get_json(silent=True))

        result = revert_service.revert_transaction(
            data.get("transaction_hash"),
            data.get("reason"),
        )

        return jsonify(result.to_dict()), 200

    except FulfillmentError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to revert transaction")
        return jsonify({"error": "Internal server error"}), 500


@ledger_bp.get("/balance")
@require_auth
@require_role("admin")
def get_balance_route():
    return jsonify({"balance": balance_service.get_balance()}), 200


@ledger_bp.get("/transactions")
@require_auth
@require_role("admin")
def list_transactions_route():
    limit = request.args.get("limit", default=100, type=int)
    lines = balance_service.list_transactions(
        include_deleted=_truthy(request.args.get("include_deleted")),
        order_id=request.args.get("order_id"),
        limit=limit,
    )
    return jsonify({"transactions": [line.to_dict() for line in lines]}), 200


@ledger_bp.get("/transactions/<transaction_hash>")
@require_auth
@require_role("admin")
def get_transaction_route(transaction_hash: str):
    try:
        return jsonify(balance_service.get_transaction(transaction_hash)), 200

    except FulfillmentError as e:
        return jsonify(e.to_dict()), e.status_code


@ledger_bp.get("/ledger/reconcile")
@require_auth
@require_role("admin")
def reconcile_route():
    report = balance_service.reconcile()
    return jsonify(report.to_dict()), 200
