# laundry/ordering/delivery.py
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, Iterable

STANDARD_TURNAROUND_DAYS = 2
EXTENDED_TURNAROUND_DAYS = 3
SLOW_SERVICES = ("dry cleaning", "stain removal")


def needs_extended_turnaround(services: Iterable[Dict[str, Any]]) -> bool:
    for s in services or []:
        name = str((s or {}).get("name") or "").lower()
        if any(k in name for k in SLOW_SERVICES):
            return True
    return False


def expected_delivery(services: Iterable[Dict[str, Any]], created_at: datetime) -> datetime:
    days = EXTENDED_TURNAROUND_DAYS if needs_extended_turnaround(services) else STANDARD_TURNAROUND_DAYS
    return created_at + timedelta(days=days)
