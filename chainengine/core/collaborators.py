"""In-process implementations of the engine's external collaborators.

The ChainManager only depends on these narrow interfaces:

- inventory: add_item(item_id, quantity), has_item(item_id) -> bool, save()
- publisher: async publish_event(type, title, description, location=None) -> bool
- calendar: get_current_day() -> int
- storage: get_item(key) -> str | None, set_item(key, value)
- friendship (optional): meets_tier(npc_id, tier) -> bool

The classes below satisfy them for the developer console and for tests; a
host game passes its own objects instead.
"""
from __future__ import annotations
import json
import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

INVENTORY_STORAGE_KEY = "inventory"

# Ordered from lowest to highest
FRIENDSHIP_TIERS = ["stranger", "acquaintance", "good_friend", "best_friend"]


class MemoryInventory:
    """Item counts kept in memory, optionally persisted to key/value storage."""

    def __init__(self, storage=None, items: Optional[Dict[str, int]] = None):
        self.storage = storage
        self.items: Dict[str, int] = dict(items or {})

    def add_item(self, item_id: str, quantity: int = 1) -> None:
        if quantity <= 0:
            return
        self.items[item_id] = self.items.get(item_id, 0) + quantity

    def remove_item(self, item_id: str, quantity: int = 1) -> bool:
        current = self.items.get(item_id, 0)
        if current < quantity:
            return False
        if current == quantity:
            del self.items[item_id]
        else:
            self.items[item_id] = current - quantity
        return True

    def has_item(self, item_id: str) -> bool:
        return self.items.get(item_id, 0) > 0

    def count(self, item_id: str) -> int:
        return self.items.get(item_id, 0)

    def save(self) -> None:
        if self.storage is None:
            return
        self.storage.set_item(INVENTORY_STORAGE_KEY, json.dumps(self.items))

    @classmethod
    def restore(cls, storage) -> "MemoryInventory":
        """Build an inventory from what was last saved (empty if nothing usable)."""
        raw = storage.get_item(INVENTORY_STORAGE_KEY)
        items: Dict[str, int] = {}
        if raw:
            try:
                items = {str(k): int(v) for k, v in json.loads(raw).items()}
            except (ValueError, AttributeError, TypeError):
                logger.warning("Discarding unreadable saved inventory")
        return cls(storage=storage, items=items)


class NullEventPublisher:
    """Publisher used when no shared backend is configured: only logs."""

    async def publish_event(self, event_type: str, title: str, description: str,
                            location: Optional[Dict[str, Any]] = None) -> bool:
        logger.info("World event (%s): %s", event_type, title)
        return True


class RecordingEventPublisher:
    """Publisher keeping every published event in memory."""

    def __init__(self, fail: bool = False):
        self.events: List[Dict[str, Any]] = []
        self.fail = fail

    async def publish_event(self, event_type: str, title: str, description: str,
                            location: Optional[Dict[str, Any]] = None) -> bool:
        if self.fail:
            raise ConnectionError("world event backend unavailable")
        self.events.append({
            "type": event_type,
            "title": title,
            "description": description,
            "location": location,
        })
        return True


class FriendshipTable:
    """Friendship tiers per NPC, compared by their position in FRIENDSHIP_TIERS."""

    def __init__(self, tiers: Optional[Dict[str, str]] = None):
        self.tiers: Dict[str, str] = dict(tiers or {})

    def set_tier(self, npc_id: str, tier: str) -> None:
        if tier not in FRIENDSHIP_TIERS:
            raise ValueError(f"Unknown friendship tier: {tier}")
        self.tiers[npc_id] = tier

    def meets_tier(self, npc_id: str, tier: str) -> bool:
        if tier not in FRIENDSHIP_TIERS:
            return False
        current = self.tiers.get(npc_id, FRIENDSHIP_TIERS[0])
        return FRIENDSHIP_TIERS.index(current) >= FRIENDSHIP_TIERS.index(tier)
