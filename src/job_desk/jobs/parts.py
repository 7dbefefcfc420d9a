"""Parts consumed by a job during an edit session."""

import logging
import sqlite3
from typing import Iterable, Optional

from job_desk.database.models import InventoryItem
from job_desk.database.repository import Repository
from job_desk.identity import Identity

logger = logging.getLogger(__name__)


class PartsUsage:
    """In-memory map of inventory item id → quantity used.

    Availability and price are captured when the inventory is loaded;
    quantities are clamped against that snapshot.
    """

    def __init__(self, items: Iterable[InventoryItem] = ()):
        self._available: dict[int, int] = {}
        self._unit_price: dict[int, float] = {}
        self._used: dict[int, int] = {}
        self.load(items)

    def load(self, items: Iterable[InventoryItem]):
        self._available = {i.id: max(i.quantity, 0) for i in items}
        self._unit_price = {i.id: i.unit_price for i in items}
        self._used = {}

    def reset(self):
        self._used = {}

    def knows(self, item_id: int) -> bool:
        return item_id in self._available

    def available(self, item_id: int) -> int:
        return self._available.get(item_id, 0)

    def quantity_used(self, item_id: int) -> int:
        return self._used.get(item_id, 0)

    def set_quantity_used(self, item_id: int, qty: int) -> Optional[int]:
        """Record usage, clamped to ``[0, available]``.

        Unknown items are ignored and return None; otherwise the stored
        (possibly clamped) quantity is returned.
        """
        if item_id not in self._available:
            return None
        qty = min(max(int(qty), 0), self._available[item_id])
        if qty:
            self._used[item_id] = qty
        else:
            self._used.pop(item_id, None)
        return qty

    def used_items(self) -> list[tuple[int, int]]:
        return [(i, q) for i, q in self._used.items() if q > 0]

    def line_total(self, item_id: int) -> float:
        return self.quantity_used(item_id) * self._unit_price.get(item_id, 0.0)

    def subtotal(self) -> float:
        return sum(self.line_total(i) for i, _ in self.used_items())


def apply_parts_usage(repo: Repository, identity: Identity,
                      usage: PartsUsage) -> list[tuple[int, int, int]]:
    """Consume the used quantities from stored inventory.

    Returns ``(item_id, old_quantity, new_quantity)`` for each item.
    """
    used = usage.used_items()
    if not used:
        return []
    applied = repo.decrement_inventory(identity.company_id, used)
    for item_id, old, new in applied:
        logger.info("Inventory item %s: %d -> %d", item_id, old, new)

    touched = {item_id for item_id, _, _ in applied}
    try:
        low_stock = repo.get_reorder_items(identity.company_id)
    except sqlite3.Error:
        # Stock is already consumed at this point
        logger.exception("Reorder level check failed")
        return applied
    for item in low_stock:
        if item.id in touched:
            logger.warning(
                "%s is at or below its reorder level (%d on hand, level %d)",
                item.name, item.quantity, item.reorder_level,
            )
    return applied
