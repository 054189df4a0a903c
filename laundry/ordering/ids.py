# laundry/ordering/ids.py
"""
Order identifiers.

Two id schemes are in circulation: the current ``LD-<digits>`` and the older
``ORD<digits>``. Ids arriving from clients are matched leniently here and
nowhere else.
"""
from __future__ import annotations

import random
import re
import time
from typing import Iterable, Optional

from loguru import logger

ORDER_ID_PREFIX = "LD-"
LEGACY_ORDER_ID_PREFIX = "ORD"
ORDER_ID_PATTERN = re.compile(r"^LD-\d{9}$")

_NON_DIGITS = re.compile(r"\D")


def generate_order_id() -> str:
    stamp = str(int(time.time() * 1000))[-4:]
    rnd = random.randint(10000, 99999)
    return f"{ORDER_ID_PREFIX}{stamp}{rnd}"


def _swap_prefix(wanted: str) -> Optional[str]:
    upper = wanted.upper()
    if upper.startswith(ORDER_ID_PREFIX):
        return LEGACY_ORDER_ID_PREFIX + wanted[len(ORDER_ID_PREFIX):]
    if upper.startswith(LEGACY_ORDER_ID_PREFIX):
        return ORDER_ID_PREFIX + wanted[len(LEGACY_ORDER_ID_PREFIX):]
    return None


def resolve_order_id(wanted: str, known_ids: Iterable[str]) -> Optional[str]:
    """
    Map a caller-supplied id onto a stored one.

    Tiers, first hit wins: exact, case-insensitive, LD-/ORD prefix swap,
    digits only.
    """
    wanted = (wanted or "").strip()
    if not wanted:
        return None
    ids = [i for i in known_ids if i]

    if wanted in ids:
        return wanted

    folded = wanted.lower()
    for i in ids:
        if i.lower() == folded:
            logger.warning("Order id {!r} matched {!r} case-insensitively", wanted, i)
            return i

    swapped = _swap_prefix(wanted)
    if swapped:
        for i in ids:
            if i.lower() == swapped.lower():
                logger.warning("Order id {!r} matched {!r} by prefix swap", wanted, i)
                return i

    digits = _NON_DIGITS.sub("", wanted)
    if digits:
        for i in ids:
            if _NON_DIGITS.sub("", i) == digits:
                logger.warning("Order id {!r} matched {!r} by digits only", wanted, i)
                return i

    return None
