# laundry/ordering/store.py
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from ..errors import NotFound
from ..storage import Collection, CollectionStorage
from .ids import resolve_order_id

Order = Dict[str, Any]


def _index_of(orders: List[Order], order_id: str) -> int:
    for i, o in enumerate(orders):
        if o.get("id") == order_id:
            return i
    return -1


class OrderStore:
    def __init__(self, storage: CollectionStorage) -> None:
        self._orders = Collection(storage)
        logger.info("Loaded {} orders from storage", len(self._orders.snapshot()))

    def all(self) -> List[Order]:
        return self._orders.snapshot()

    def get(self, order_id: str) -> Optional[Order]:
        for o in self._orders.snapshot():
            if o.get("id") == order_id:
                return o
        return None

    def find(self, wanted: str) -> Optional[Order]:
        """Exact lookup with the legacy id fallbacks."""
        orders = self._orders.snapshot()
        resolved = resolve_order_id(wanted, (o.get("id") for o in orders))
        if resolved is None:
            return None
        return next(o for o in orders if o.get("id") == resolved)

    def upsert(self, order: Order) -> Order:
        def _upsert(orders: List[Order]) -> Order:
            idx = _index_of(orders, order["id"])
            if idx != -1:
                logger.info("Replacing existing order with ID {}", order["id"])
                orders[idx] = order
            else:
                orders.append(order)
            return order

        return self._orders.mutate(_upsert)

    def insert_missing(self, candidates: List[Order]) -> List[Order]:
        """Append the candidates whose id is not stored yet; return those added."""

        def _merge(orders: List[Order]) -> List[Order]:
            known = {o.get("id") for o in orders}
            added = []
            for c in candidates:
                if c["id"] in known:
                    continue
                orders.append(c)
                known.add(c["id"])
                added.append(c)
            return added

        return self._orders.mutate(_merge)

    def modify(self, order_id: str, fn: Callable[[Order], Order]) -> Order:
        """Replace the stored order with fn(stored) under the writer lock."""

        def _modify(orders: List[Order]) -> Order:
            idx = _index_of(orders, order_id)
            if idx == -1:
                raise NotFound("Order not found")
            orders[idx] = fn(orders[idx])
            return orders[idx]

        return self._orders.mutate(_modify)

    def delete(self, order_id: str) -> Order:
        def _delete(orders: List[Order]) -> Order:
            idx = _index_of(orders, order_id)
            if idx == -1:
                raise NotFound("Order not found")
            return orders.pop(idx)

        return self._orders.mutate(_delete)
