# backend/optistore/routes/system.py
"""
System health endpoint.

Each check reports healthy, degraded or unhealthy with its latency.
Any unhealthy check answers 503; degraded is still operational (200).
"""

import time
from flask import Blueprint, current_app
from sqlalchemy import func

from ..extensions import db
from ..models import ContactLens, PaymentRecord, Product, Sale, SessionToken, Store
from optistore.time_utils import utcnow

system_bp = Blueprint("system", __name__)

# Tolerance when comparing stored paid_amount to the ledger sum
LEDGER_EPSILON = 0.00005


def _timed(name: str, check) -> dict:
    start_time = time.time()
    try:
        result = check()
    except Exception:
        current_app.logger.exception("%s health check failed", name)
        result = {"status": "unhealthy", "error": f"{name} error"}
    result["latency_ms"] = round((time.time() - start_time) * 1000, 2)
    return result


def check_database_health() -> dict:
    active_sessions = db.session.query(SessionToken).filter(
        SessionToken.is_revoked.is_(False),
        SessionToken.expires_at >= utcnow(),
    ).count()
    return {
        "status": "healthy",
        "details": {
            "stores": db.session.query(Store).count(),
            "sales": db.session.query(Sale).count(),
            "active_sessions": active_sessions,
        },
    }


def check_ledger_health() -> dict:
    """Sales whose paid_amount no longer equals the sum of their payments."""
    ledger = (
        db.session.query(
            PaymentRecord.sale_id.label("sale_id"),
            func.sum(PaymentRecord.amount).label("paid"),
        )
        .group_by(PaymentRecord.sale_id)
        .subquery()
    )
    drifted = (
        db.session.query(Sale.sale_number)
        .outerjoin(ledger, ledger.c.sale_id == Sale.id)
        .filter(func.abs(Sale.paid_amount - func.coalesce(ledger.c.paid, 0)) > LEDGER_EPSILON)
        .limit(20)
        .all()
    )
    if drifted:
        return {
            "status": "degraded",
            "warning": "paid_amount differs from payment ledger",
            "details": {"sale_numbers": [number for (number,) in drifted]},
        }
    return {"status": "healthy"}


def check_catalog_health() -> dict:
    """Oversold entries are a business signal, reported but never degrading."""
    oversold = sum(
        db.session.query(model).filter(model.stock < 0).count()
        for model in (Product, ContactLens)
    )
    return {"status": "healthy", "details": {"oversold_entries": oversold}}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: all checks healthy or degraded
    - 503: at least one check unhealthy
    """
    checks = {
        "database": _timed("Database", check_database_health),
        "ledger": _timed("Ledger", check_ledger_health),
        "catalog": _timed("Catalog", check_catalog_health),
    }
    statuses = {check["status"] for check in checks.values()}

    if "unhealthy" in statuses:
        overall_status, http_status = "unhealthy", 503
    elif "degraded" in statuses:
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "checks": checks,
    }
    return response, http_status
