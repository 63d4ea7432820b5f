# Overview: Inventory reconciliation between sales and catalog stock.

"""
Inventory Reconciler

reserve: a sale takes stock out of the catalog.
release: a deleted sale puts it back.

Invariants:
- reserve is all-or-nothing: every (product_id, product_type) is resolved
  before any stock changes, and a single unknown entry fails the whole call.
- Stock may go negative on reserve. That is an oversold signal for the
  operator, not an error.
- release never fails on missing entries: the sale is historical and the
  catalog may have moved on, so those items are skipped.
- Neither function commits; the caller's transaction decides.
"""

from __future__ import annotations

import logging
from typing import Iterable, Protocol

from optistore.services import catalog_service
from optistore.services.errors import UnknownProductError

logger = logging.getLogger(__name__)


class StockLine(Protocol):
    """Anything with the reconciliation fields of a sale item."""
    product_id: int
    product_type: str
    quantity: int


def reserve(
    store_id: int,
    items: Iterable[StockLine],
    *,
    reference: str | None = None,
    user_id: int | None = None,
) -> list:
    """
    Decrement stock for every item.

    Returns the resolved catalog entries in item order.

    Raises:
        UnknownProductError: an item's catalog entry cannot be resolved;
        nothing has been mutated when this is raised.
    """
    items = list(items)

    resolved = []
    for item in items:
        entry = catalog_service.get_entry(
            store_id, item.product_id, item.product_type, lock=True
        )
        if entry is None:
            raise UnknownProductError(item.product_id, item.product_type)
        resolved.append((item, entry))

    for item, entry in resolved:
        catalog_service.adjust_stock(
            store_id,
            item.product_id,
            item.product_type,
            -item.quantity,
            movement_type="out",
            reason="Sale",
            reference=reference,
            user_id=user_id,
            entry=entry,
        )

    return [entry for _, entry in resolved]


def release(
    store_id: int,
    items: Iterable[StockLine],
    *,
    reference: str | None = None,
    user_id: int | None = None,
) -> None:
    """Restore stock for every item whose catalog entry still exists."""
    for item in items:
        entry = catalog_service.get_entry(
            store_id, item.product_id, item.product_type, lock=True
        )
        if entry is None:
            logger.debug(
                "Skipping release of %s:%s for %s; catalog entry no longer exists",
                item.product_type, item.product_id, reference,
            )
            continue

        catalog_service.adjust_stock(
            store_id,
            item.product_id,
            item.product_type,
            item.quantity,
            movement_type="in",
            reason="Sale deleted",
            reference=reference,
            user_id=user_id,
            entry=entry,
        )
