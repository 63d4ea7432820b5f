# Overview: Flask API routes for stores and their tax policy.

from flask import Blueprint, request, jsonify, current_app, g

from ..extensions import db
from ..services import store_service, tax_service
from ..services.store_service import StoreError
from ..validation import ValidationError
from ..decorators import require_auth, require_permission, require_store_access


stores_bp = Blueprint("stores", __name__, url_prefix="/api/stores")


@stores_bp.post("/")
@require_auth
@require_permission("stores", "create")
def create_store_route():
    """
    Create a store owned by the caller's owner account.

    An employee creating a store is assigned to it.
    """
    try:
        data = request.get_json(silent=True) or {}
        user = g.current_user
        owner_id = user.id if user.is_owner else user.owner_id

        store = store_service.create_store(
            data.get("name"),
            owner_id=owner_id,
            code=data.get("code"),
            address=data.get("address"),
            phone=data.get("phone"),
            timezone=data.get("timezone") or "UTC",
            tax_rate_percent=data.get("tax_rate_percent"),
        )

        if not user.is_owner:
            user.assigned_store_ids = sorted(set(user.assigned_store_ids or []) | {store.id})
            db.session.commit()

        return jsonify({"store": store.to_dict()}), 201

    except (StoreError, ValidationError) as e:
        return jsonify({"error": str(e), "code": "INVALID_STORE"}), 400
    except Exception:
        current_app.logger.exception("Failed to create store")
        return jsonify({"error": "Internal server error"}), 500


@stores_bp.get("/")
@require_auth
@require_permission("stores", "view")
def list_stores_route():
    stores = store_service.list_stores_for_user(g.current_user)
    return jsonify({"stores": [store.to_dict() for store in stores]}), 200


@stores_bp.get("/<int:store_id>")
@require_auth
@require_permission("stores", "view")
@require_store_access
def get_store_route(store_id: int):
    return jsonify({"store": g.store.to_dict()}), 200


@stores_bp.get("/<int:store_id>/tax-rate")
@require_auth
@require_permission("stores", "view")
@require_store_access
def get_tax_rate_route(store_id: int):
    rate = tax_service.get_tax_rate_percent(store_id)
    return jsonify({"store_id": store_id, "tax_rate_percent": str(rate)}), 200


@stores_bp.put("/<int:store_id>/tax-rate")
@require_auth
@require_permission("stores", "edit")
@require_store_access
def set_tax_rate_route(store_id: int):
    """
    Change the store's tax rate.

    Existing sales keep the rate they were built with.
    """
    try:
        data = request.get_json(silent=True) or {}
        if "tax_rate_percent" not in data:
            return jsonify({"error": "tax_rate_percent required", "code": "INVALID_TAX_RATE"}), 400

        store = tax_service.set_tax_rate_percent(store_id, data["tax_rate_percent"])
        current_app.logger.info(
            "Store %s tax rate set to %s by user %s", store_id, store.tax_rate_percent, g.current_user.id
        )
        return jsonify({"store_id": store_id, "tax_rate_percent": str(store.tax_rate_percent)}), 200

    except ValidationError as e:
        return jsonify({"error": str(e), "code": "INVALID_TAX_RATE"}), 400
    except Exception:
        current_app.logger.exception("Failed to set tax rate")
        return jsonify({"error": "Internal server error"}), 500
