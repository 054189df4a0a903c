# laundry/ordering/service.py
from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

import pydantic
from loguru import logger

from ..errors import NotFound, ValidationError
from ..models import OrderIn, OrderStatus, parse_iso, to_iso, utcnow
from ..realtime import ORDER_CREATED, ORDER_DELETED, ORDER_UPDATED, STATUS_UPDATED, Notifier
from .delivery import expected_delivery
from .ids import generate_order_id
from .store import Order, OrderStore


def _validated(data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ValidationError("Order must be a JSON object")
    try:
        model = OrderIn.model_validate(data)
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        where = ".".join(str(p) for p in first.get("loc", ())) or "order"
        raise ValidationError(f"Invalid order data: {where}: {first.get('msg')}")
    return model.model_dump(mode="json", exclude_none=True)


def parse_status(raw: Any) -> OrderStatus:
    try:
        return OrderStatus(str(raw or "").strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in OrderStatus)
        raise ValidationError(f"Unknown status {raw!r}; expected one of: {allowed}")


def check_transition(current: Any, new: OrderStatus) -> None:
    """Statuses only move forward; repeating the current one is allowed."""
    try:
        prev = OrderStatus(current)
    except ValueError:
        return
    if new.rank < prev.rank:
        raise ValidationError(f"Cannot move order from {prev.value} back to {new.value}")


class OrderService:
    def __init__(
        self,
        store: OrderStore,
        notifier: Notifier,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self.clock = clock
        self._deliveries: Set["asyncio.Task[None]"] = set()

    # -------------------
    # Helpers
    # -------------------
    def _fill_expected_delivery(self, order: Order, created: datetime) -> None:
        if order.get("expectedDelivery"):
            due = parse_iso(order["expectedDelivery"])
            if due is None:
                raise ValidationError("expectedDelivery must be an ISO-8601 timestamp")
            if due < created:
                raise ValidationError("expectedDelivery cannot be before createdAt")
            return
        order["expectedDelivery"] = to_iso(expected_delivery(order.get("services") or [], created))

    def _require(self, order_id: str) -> Order:
        order = self.store.find(order_id)
        if not order:
            logger.info("Order {} not found", order_id)
            raise NotFound("Order not found")
        return order

    async def _deliver(self, events: Tuple[Tuple[str, Any], ...]) -> None:
        for event, data in events:
            try:
                await self.notifier.publish(event, data)
            except Exception:
                logger.exception("Notifier failed for {}", event)

    def _delivered(self, task: "asyncio.Task[None]") -> None:
        self._deliveries.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.opt(exception=task.exception()).error("Event delivery task failed")

    def _publish(self, *events: Tuple[str, Any]) -> None:
        """Hand events to the notifier in the background, in order."""
        if not events:
            return
        task = asyncio.create_task(self._deliver(events), name=f"notify:{events[0][0]}")
        self._deliveries.add(task)
        task.add_done_callback(self._delivered)

    async def drain(self) -> None:
        """Wait for every scheduled notification to finish."""
        while self._deliveries:
            await asyncio.gather(*list(self._deliveries), return_exceptions=True)

    # -------------------
    # Queries
    # -------------------
    def list_all(self) -> List[Order]:
        return self.store.all()

    def list_for_user(self, email: str) -> List[Order]:
        return [o for o in self.store.all() if (o.get("customer") or {}).get("email") == email]

    def get_by_id(self, order_id: str) -> Optional[Order]:
        return self.store.find(order_id)

    # -------------------
    # Mutations
    # -------------------
    async def create(self, order_data: Dict[str, Any]) -> Order:
        if isinstance(order_data, dict):
            # lifecycle fields always start fresh
            order_data = {k: v for k, v in order_data.items() if k not in ("createdAt", "status", "statusHistory")}
        order = _validated(order_data)
        now = self.clock()
        stamp = to_iso(now)

        if not order.get("id"):
            order["id"] = generate_order_id()
            logger.info("Generated order ID: {}", order["id"])
        order["createdAt"] = stamp
        order["status"] = OrderStatus.pending.value
        order["statusHistory"] = {OrderStatus.pending.value: stamp}
        self._fill_expected_delivery(order, now)

        saved = self.store.upsert(order)
        self._publish((ORDER_CREATED, saved))
        return saved

    async def update_status(self, order_id: str, new_status: Any) -> Order:
        status = parse_status(new_status)
        current = self._require(order_id)
        stamp = to_iso(self.clock())

        def _apply(order: Order) -> Order:
            check_transition(order.get("status"), status)
            order["status"] = status.value
            history = order.get("statusHistory") or {}
            history[status.value] = stamp
            order["statusHistory"] = history
            return order

        saved = self.store.modify(current["id"], _apply)
        logger.info("Order {} status updated to {}", saved["id"], status.value)
        self._publish(
            (STATUS_UPDATED, {"id": saved["id"], "status": saved["status"]}),
            (ORDER_UPDATED, saved),
        )
        return saved

    async def update(self, order_id: str, full_order: Dict[str, Any]) -> Order:
        incoming = _validated(full_order)
        current = self._require(order_id)

        def _replace(stored: Order) -> Order:
            order = dict(incoming)
            order["id"] = stored["id"]
            order.setdefault("createdAt", stored.get("createdAt") or to_iso(self.clock()))
            if "status" in incoming:
                check_transition(stored.get("status"), OrderStatus(incoming["status"]))
            order.setdefault("status", stored.get("status") or OrderStatus.pending.value)
            history = dict(stored.get("statusHistory") or {})
            history.update(order.get("statusHistory") or {})
            if order["status"] not in history:
                history[order["status"]] = to_iso(self.clock())
            order["statusHistory"] = history
            created = parse_iso(order["createdAt"])
            if created is None:
                raise ValidationError("createdAt must be an ISO-8601 timestamp")
            self._fill_expected_delivery(order, created)
            return order

        saved = self.store.modify(current["id"], _replace)
        logger.info("Order {} updated", saved["id"])
        self._publish((ORDER_UPDATED, saved))
        return saved

    async def delete(self, order_id: str) -> Order:
        current = self._require(order_id)
        removed = self.store.delete(current["id"])
        logger.info("Order {} deleted", removed["id"])
        self._publish((ORDER_DELETED, {"id": removed["id"]}))
        return removed

    async def sync(self, client_orders: Any) -> Dict[str, int]:
        """
        Merge a client's local orders by id. Orders the server already has
        are left alone so stale client copies never overwrite server state.
        """
        if not isinstance(client_orders, list):
            raise ValidationError("syncOrders expects a list of orders")

        candidates: List[Order] = []
        skipped = 0
        for raw in client_orders:
            try:
                order = _validated(raw)
            except ValidationError as e:
                logger.warning("Skipping unsyncable order: {}", e.message)
                skipped += 1
                continue
            if not order.get("id"):
                skipped += 1
                continue

            now = self.clock()
            created = parse_iso(order.get("createdAt")) or now
            order["createdAt"] = to_iso(created)
            order.setdefault("status", OrderStatus.pending.value)
            history = {OrderStatus.pending.value: order["createdAt"]}
            history.update(order.get("statusHistory") or {})
            history.setdefault(order["status"], order["createdAt"])
            order["statusHistory"] = history
            try:
                self._fill_expected_delivery(order, created)
            except ValidationError as e:
                logger.warning("Skipping order {}: {}", order["id"], e.message)
                skipped += 1
                continue
            candidates.append(order)

        added = self.store.insert_missing(candidates)
        skipped += len(candidates) - len(added)
        self._publish(*((ORDER_CREATED, order) for order in added))
        logger.info("Sync complete: {} added, {} skipped", len(added), skipped)
        return {"added": len(added), "skipped": skipped}
