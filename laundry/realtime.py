# laundry/realtime.py
from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Set

import httpx
from fastapi import WebSocket
from loguru import logger

ORDER_CREATED = "orderCreated"
ORDER_UPDATED = "orderUpdated"
STATUS_UPDATED = "statusUpdated"
ORDER_DELETED = "orderDeleted"


class Notifier(ABC):
    """Best-effort fan-out of order lifecycle events. Never raises."""

    @abstractmethod
    async def publish(self, event: str, data: Any) -> None:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


class ConnectionHub(Notifier):
    """Currently connected WebSocket subscribers. No backlog for late joiners."""

    def __init__(self) -> None:
        self._sockets: Set[WebSocket] = set()
        self._lock = asyncio.Lock()

    @property
    def count(self) -> int:
        return len(self._sockets)

    async def connect(self, ws: WebSocket) -> None:
        async with self._lock:
            self._sockets.add(ws)
        logger.info("Subscriber connected ({} total)", self.count)

    async def disconnect(self, ws: WebSocket) -> None:
        async with self._lock:
            self._sockets.discard(ws)
        logger.info("Subscriber disconnected ({} total)", self.count)

    async def publish(self, event: str, data: Any) -> None:
        async with self._lock:
            targets = list(self._sockets)
        logger.debug("Emitting {} to {} subscribers", event, len(targets))

        dead = []
        for ws in targets:
            try:
                await ws.send_json({"event": event, "data": data})
            except Exception as e:
                logger.warning("Dropping subscriber after failed {} send: {}", event, e)
                dead.append(ws)

        if dead:
            async with self._lock:
                for ws in dead:
                    self._sockets.discard(ws)


class RemoteRelay(Notifier):
    """
    Local deployments have nobody to broadcast to; instead every change is
    pushed to the authoritative server's HTTP API when one is configured.
    """

    def __init__(self, base_url: str, timeout: float = 5.0, client: Optional[httpx.AsyncClient] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    def _request_for(self, event: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        order_id = data.get("id")
        if event == ORDER_CREATED:
            return {"method": "POST", "url": "/api/orders", "json": data}
        if event == STATUS_UPDATED:
            return {"method": "PUT", "url": f"/api/orders/{order_id}/status", "json": {"status": data.get("status")}}
        if event == ORDER_UPDATED:
            return {"method": "PUT", "url": f"/api/orders/{order_id}", "json": data}
        if event == ORDER_DELETED:
            return {"method": "DELETE", "url": f"/api/orders/{order_id}"}
        return None

    async def publish(self, event: str, data: Any) -> None:
        req = self._request_for(event, data if isinstance(data, dict) else {})
        if req is None:
            return
        try:
            resp = await self._client.request(**req)
            resp.raise_for_status()
            logger.debug("Relayed {} to {} ({})", event, req["url"], resp.status_code)
        except httpx.HTTPError as e:
            logger.warning("Could not relay {} to {}: {}", event, self.base_url, e)

    async def aclose(self) -> None:
        await self._client.aclose()
