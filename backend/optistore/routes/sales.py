# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/optistore/routes/sales.py
"""Sales API routes with permission enforcement"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import sales_service, reporting_service, permission_service
from ..services.errors import SalesError, SaleNotFoundError
from ..services.sales_service import CartInput
from ..validation import ValidationError
from ..decorators import require_auth, require_permission, require_store_access


sales_bp = Blueprint("sales", __name__, url_prefix="/api")


def _error_response(e: SalesError):
    status = 404 if isinstance(e, SaleNotFoundError) else 400
    return jsonify(e.to_dict()), status


def load_accessible_sale(sale_id: int):
    """
    Fetch a sale the current user may work with.

    Raises SaleNotFoundError for sales of stores outside the user's reach.
    """
    sale = sales_service.get_sale(sale_id)
    if not permission_service.can_access_store(g.current_user, sale.store):
        raise SaleNotFoundError(sale_id)
    return sale


def _listing_filters() -> dict:
    return {
        "text": request.args.get("q"),
        "status": request.args.get("status") or None,
        "date_range": request.args.get("range") or None,
    }


@sales_bp.post("/stores/<int:store_id>/sales")
@require_auth
@require_permission("invoices", "create")
@require_store_access
def create_sale_route(store_id: int):
    """
    Build a sale from a cart.

    Body:
        items: [{product_id, product_type, product_name, quantity, unit_price}]
        discount_percent, initial_payment, payment_method,
        client_id, client_name, client_email, notes
    """
    try:
        cart = CartInput.from_payload(request.get_json(silent=True))
        user = g.current_user
        sale = sales_service.build_sale(
            store_id,
            cart,
            created_by=user.name,
            user_id=user.id,
        )
        return jsonify({"sale": sale.to_dict(include_items=True)}), 201

    except SalesError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/stores/<int:store_id>/sales")
@require_auth
@require_permission("invoices", "view")
@require_store_access
def list_sales_route(store_id: int):
    """
    Query params:
    - q: substring of sale number, client name or client email
    - status: unpaid | partial | paid
    - range: today | last_7_days | last_30_days | this_month | all
    """
    try:
        sales = reporting_service.list_store_sales(store_id, **_listing_filters())
        return jsonify({
            "sales": [sale.to_dict() for sale in sales],
            "summary": reporting_service.aggregate_sales(sales).to_dict(),
        }), 200

    except ValidationError as e:
        return jsonify({"error": str(e), "code": "INVALID_FILTER"}), 400


@sales_bp.get("/stores/<int:store_id>/sales/summary")
@require_auth
@require_permission("invoices", "view")
@require_store_access
def sales_summary_route(store_id: int):
    """Dashboard totals; accepts the same filters as the listing."""
    try:
        summary = reporting_service.store_sales_summary(store_id, **_listing_filters())
        return jsonify({"store_id": store_id, "summary": summary}), 200

    except ValidationError as e:
        return jsonify({"error": str(e), "code": "INVALID_FILTER"}), 400


@sales_bp.get("/sales/<int:sale_id>")
@require_auth
@require_permission("invoices", "view")
def get_sale_route(sale_id: int):
    """Full receipt data: items, totals and payment history."""
    try:
        sale = load_accessible_sale(sale_id)
        return jsonify({"sale": sale.to_dict(include_items=True)}), 200

    except SalesError as e:
        return _error_response(e)


@sales_bp.patch("/sales/<int:sale_id>")
@require_auth
@require_permission("invoices", "edit")
def update_sale_route(sale_id: int):
    """Edit client identity and notes. Items and totals cannot change."""
    try:
        load_accessible_sale(sale_id)
        sale = sales_service.update_sale_details(sale_id, request.get_json(silent=True))
        return jsonify({"sale": sale.to_dict(include_items=True)}), 200

    except SalesError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.delete("/sales/<int:sale_id>")
@require_auth
@require_permission("invoices", "delete")
def delete_sale_route(sale_id: int):
    """Delete a sale and put its items back in stock."""
    try:
        load_accessible_sale(sale_id)
        sales_service.delete_sale(sale_id, user_id=g.current_user.id)
        return jsonify({"message": "Sale deleted"}), 200

    except SalesError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete sale")
        return jsonify({"error": "Internal server error"}), 500
