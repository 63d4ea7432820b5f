# Overview: Flask API routes for the store catalog (products and contact lenses) and stock.

from flask import Blueprint, request, jsonify, current_app, g

from ..services import catalog_service
from ..services.catalog_service import CatalogError
from ..models.catalog import PRODUCT_TYPE_PRODUCT, PRODUCT_TYPE_CONTACT_LENS
from ..validation import ValidationError
from ..decorators import require_auth, require_permission, require_store_access


catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/stores/<int:store_id>")

# URL collection name -> product_type
COLLECTIONS = {
    "products": PRODUCT_TYPE_PRODUCT,
    "contact-lenses": PRODUCT_TYPE_CONTACT_LENS,
}


def _product_type_or_404(collection: str):
    product_type = COLLECTIONS.get(collection)
    if product_type is None:
        return None, (jsonify({"error": "Not found"}), 404)
    return product_type, None


@catalog_bp.post("/<collection>")
@require_auth
@require_permission("inventory", "create")
@require_store_access
def create_entry_route(store_id: int, collection: str):
    product_type, error = _product_type_or_404(collection)
    if error:
        return error
    try:
        entry = catalog_service.create_entry(store_id, product_type, request.get_json(silent=True))
        return jsonify({"entry": entry.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e), "code": "INVALID_CATALOG_ENTRY"}), 400
    except Exception:
        current_app.logger.exception("Failed to create catalog entry")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.get("/<collection>")
@require_auth
@require_permission("inventory", "view")
@require_store_access
def list_entries_route(store_id: int, collection: str):
    """
    Query params:
    - q: substring of name or brand
    - include_inactive: "true" to list deactivated entries too
    """
    product_type, error = _product_type_or_404(collection)
    if error:
        return error

    entries = catalog_service.list_entries(
        store_id,
        product_type,
        search=request.args.get("q"),
        include_inactive=request.args.get("include_inactive", "").lower() == "true",
    )
    return jsonify({"entries": [entry.to_dict() for entry in entries]}), 200


@catalog_bp.get("/<collection>/<int:product_id>")
@require_auth
@require_permission("inventory", "view")
@require_store_access
def get_entry_route(store_id: int, collection: str, product_id: int):
    product_type, error = _product_type_or_404(collection)
    if error:
        return error

    entry = catalog_service.get_entry(store_id, product_id, product_type)
    if entry is None:
        return jsonify({"error": "Catalog entry not found", "code": "CATALOG_ENTRY_NOT_FOUND"}), 404
    return jsonify({"entry": entry.to_dict()}), 200


@catalog_bp.patch("/<collection>/<int:product_id>")
@require_auth
@require_permission("inventory", "edit")
@require_store_access
def update_entry_route(store_id: int, collection: str, product_id: int):
    product_type, error = _product_type_or_404(collection)
    if error:
        return error
    try:
        entry = catalog_service.update_entry(
            store_id, product_type, product_id, request.get_json(silent=True)
        )
        return jsonify({"entry": entry.to_dict()}), 200

    except CatalogError as e:
        return jsonify({"error": str(e), "code": "CATALOG_ENTRY_NOT_FOUND"}), 404
    except ValidationError as e:
        return jsonify({"error": str(e), "code": "INVALID_CATALOG_ENTRY"}), 400
    except Exception:
        current_app.logger.exception("Failed to update catalog entry")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.delete("/<collection>/<int:product_id>")
@require_auth
@require_permission("inventory", "delete")
@require_store_access
def delete_entry_route(store_id: int, collection: str, product_id: int):
    product_type, error = _product_type_or_404(collection)
    if error:
        return error
    try:
        catalog_service.delete_entry(store_id, product_type, product_id)
        return jsonify({"message": "Catalog entry deleted"}), 200

    except CatalogError as e:
        return jsonify({"error": str(e), "code": "CATALOG_ENTRY_NOT_FOUND"}), 404
    except Exception:
        current_app.logger.exception("Failed to delete catalog entry")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.post("/catalog/<product_type>/<int:product_id>/adjust")
@require_auth
@require_permission("inventory", "edit")
@require_store_access
def adjust_stock_route(store_id: int, product_type: str, product_id: int):
    """
    Manual stock correction.

    Body: {"delta": int (non-zero, signed), "reason": str}
    """
    try:
        data = request.get_json(silent=True) or {}
        entry = catalog_service.manual_adjust_stock(
            store_id,
            product_id,
            product_type,
            data.get("delta"),
            reason=data.get("reason"),
            user_id=g.current_user.id,
        )
        return jsonify({"entry": entry.to_dict()}), 200

    except CatalogError as e:
        return jsonify({"error": str(e), "code": "CATALOG_ENTRY_NOT_FOUND"}), 404
    except ValidationError as e:
        return jsonify({"error": str(e), "code": "INVALID_ADJUSTMENT"}), 400
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.get("/catalog/low-stock")
@require_auth
@require_permission("inventory", "view")
@require_store_access
def low_stock_route(store_id: int):
    entries = catalog_service.low_stock_entries(store_id)
    return jsonify({"entries": [entry.to_dict() for entry in entries]}), 200


@catalog_bp.get("/catalog/movements")
@require_auth
@require_permission("inventory", "view")
@require_store_access
def stock_movements_route(store_id: int):
    """Stock movement history; ?reference=S-001-0001 narrows to one sale."""
    movements = catalog_service.stock_movements(store_id, reference=request.args.get("reference"))
    return jsonify({"movements": [movement.to_dict() for movement in movements]}), 200
