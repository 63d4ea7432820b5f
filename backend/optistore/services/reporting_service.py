# Overview: Sale query/listing; filters a collection of sales and aggregates totals.

"""
Sale Query / Listing

filter_sales and aggregate_sales are pure: they work on any iterable of
sale-like objects (ORM rows or test doubles) and never query the database.
list_store_sales is the thin loader the routes use.

REVENUE:
total_revenue is the cash actually collected (sum of paid_amount), not the
amount billed (sum of total). Dashboards show both; do not conflate them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal

from optistore.extensions import db
from optistore.models import Sale, Store
from optistore.pricing import VALID_PAYMENT_STATUSES, ZERO
from optistore.time_utils import local_date, utcnow
from optistore.validation import ValidationError

RANGE_TODAY = "today"
RANGE_LAST_7_DAYS = "last_7_days"
RANGE_LAST_30_DAYS = "last_30_days"
RANGE_THIS_MONTH = "this_month"
RANGE_ALL = "all"

VALID_DATE_RANGES = [
    RANGE_TODAY,
    RANGE_LAST_7_DAYS,
    RANGE_LAST_30_DAYS,
    RANGE_THIS_MONTH,
    RANGE_ALL,
]


class ReportError(Exception):
    """Raised when a sales listing cannot be produced."""
    pass


@dataclass(frozen=True)
class SalesAggregate:
    count: int
    total_revenue: Decimal
    total_paid: Decimal
    total_outstanding: Decimal
    total_billed: Decimal

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "total_revenue": str(self.total_revenue),
            "total_paid": str(self.total_paid),
            "total_outstanding": str(self.total_outstanding),
            "total_billed": str(self.total_billed),
        }


def _range_start(date_range: str, today: date) -> date | None:
    """First local calendar day included in the range; None means unbounded."""
    if date_range == RANGE_TODAY:
        return today
    if date_range == RANGE_LAST_7_DAYS:
        return today - timedelta(days=6)
    if date_range == RANGE_LAST_30_DAYS:
        return today - timedelta(days=29)
    if date_range == RANGE_THIS_MONTH:
        return today.replace(day=1)
    return None


def _matches_text(sale, needle: str) -> bool:
    for value in (sale.sale_number, sale.client_name, sale.client_email):
        if value and needle in value.lower():
            return True
    return False


def filter_sales(
    sales,
    *,
    text: str | None = None,
    status: str | None = None,
    date_range: str | None = None,
    now: datetime | None = None,
    tz: str = "UTC",
) -> list:
    """
    Apply the text, status and date-range predicates (AND-ed).

    Dates compare on the local calendar day in tz, so a sale made at 23:30
    local time counts as "today" until local midnight regardless of UTC.
    Sales dated after now (clock skew) are kept.
    """
    if status and status not in VALID_PAYMENT_STATUSES:
        raise ValidationError(f"status must be one of {VALID_PAYMENT_STATUSES}")
    if date_range and date_range not in VALID_DATE_RANGES:
        raise ValidationError(f"range must be one of {VALID_DATE_RANGES}")

    needle = (text or "").strip().lower()
    start_day = None
    if date_range and date_range != RANGE_ALL:
        start_day = _range_start(date_range, local_date(now or utcnow(), tz))

    result = []
    for sale in sales:
        if needle and not _matches_text(sale, needle):
            continue
        if status and sale.status != status:
            continue
        if start_day is not None and local_date(sale.created_at, tz) < start_day:
            continue
        result.append(sale)
    return result


def aggregate_sales(sales) -> SalesAggregate:
    sales = list(sales)
    total_paid = sum((Decimal(sale.paid_amount) for sale in sales), ZERO)
    return SalesAggregate(
        count=len(sales),
        total_revenue=total_paid,
        total_paid=total_paid,
        total_outstanding=sum((Decimal(sale.remaining_amount) for sale in sales), ZERO),
        total_billed=sum((Decimal(sale.total) for sale in sales), ZERO),
    )


def list_store_sales(
    store_id: int,
    *,
    text: str | None = None,
    status: str | None = None,
    date_range: str | None = None,
    now: datetime | None = None,
) -> list[Sale]:
    """A store's sales, newest first, filtered in the store's timezone."""
    store = db.session.query(Store).filter_by(id=store_id).first()
    if store is None:
        raise ReportError("Store not found")

    sales = (
        db.session.query(Sale)
        .filter(Sale.store_id == store_id)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .all()
    )
    return filter_sales(
        sales,
        text=text,
        status=status,
        date_range=date_range,
        now=now,
        tz=store.timezone or "UTC",
    )


def store_sales_summary(store_id: int, **filters) -> dict:
    sales = list_store_sales(store_id, **filters)
    by_status = {key: 0 for key in VALID_PAYMENT_STATUSES}
    for sale in sales:
        by_status[sale.status] = by_status.get(sale.status, 0) + 1

    summary = aggregate_sales(sales).to_dict()
    summary["by_status"] = by_status
    return summary
