# Overview: Flask API routes for payment operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..services import payment_service
from ..services.errors import InvalidAmountError, SalesError, SaleNotFoundError
from ..decorators import require_auth, require_permission
from .sales import load_accessible_sale


payments_bp = Blueprint("payments", __name__, url_prefix="/api/sales/<int:sale_id>/payments")


@payments_bp.post("")
@require_auth
@require_permission("invoices", "edit")
def add_payment_route(sale_id: int):
    """
    Record a payment on a sale.

    Body: {"amount": "50.00", "method": "cash|card|transfer|cheque", "notes": "..."}

    400 with code INVALID_AMOUNT, INVALID_PAYMENT_METHOD or EXCEEDS_BALANCE
    leaves the sale unchanged.
    """
    try:
        load_accessible_sale(sale_id)
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            raise InvalidAmountError("Invalid JSON payload")
        sale = payment_service.add_payment(
            sale_id,
            data.get("amount"),
            data.get("method"),
            data.get("notes"),
            user_id=g.current_user.id,
        )
        return jsonify({"sale": sale.to_dict(include_items=True)}), 201

    except SalesError as e:
        status = 404 if isinstance(e, SaleNotFoundError) else 400
        return jsonify(e.to_dict()), status
    except Exception:
        current_app.logger.exception("Failed to add payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.get("")
@require_auth
@require_permission("invoices", "view")
def list_payments_route(sale_id: int):
    try:
        load_accessible_sale(sale_id)
        payments = payment_service.list_payments(sale_id)
        return jsonify({
            "payments": [payment.to_dict() for payment in payments],
            "summary": payment_service.get_payment_summary(sale_id),
        }), 200

    except SaleNotFoundError as e:
        return jsonify(e.to_dict()), 404
