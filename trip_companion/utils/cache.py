from __future__ import annotations

import logging

from cachetools import TTLCache

logger = logging.getLogger(__name__)

_notified: TTLCache = TTLCache(maxsize=4096, ttl=3 * 3600)


def configure_cache(ttl: int) -> None:
    global _notified
    _notified = TTLCache(maxsize=4096, ttl=ttl)


def mark_notified(journey_id: str, action_id: str) -> bool:
    """Record the pair; False when it was already recorded and still live."""
    key = (journey_id, action_id)
    if key in _notified:
        logger.debug("Already notified: %s / %s", journey_id, action_id)
        return False
    _notified[key] = True
    return True


def invalidate_all() -> None:
    _notified.clear()
