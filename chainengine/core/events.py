"""Notification bus for chain lifecycle events.

Managers emit notifications when state changes; UI and game code subscribe.
Delivery is synchronous and in subscription order. A failing listener is
logged and skipped so the remaining listeners still receive the payload.

Usage:
    unsubscribe = bus.on(GameEvent.CHAIN_UPDATED, lambda payload: ...)
    bus.emit(GameEvent.CHAIN_UPDATED, {"chain_id": "harvest_gift", ...})
    unsubscribe()
"""
from __future__ import annotations
import logging
from enum import Enum
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

Listener = Callable[[Dict[str, Any]], None]


class GameEvent(str, Enum):
    """All notifications produced by the chain engine."""
    # Chain notifications
    CHAIN_UPDATED = "chain:updated"  # {chain_id, stage_id, action}
    CHAIN_CHOICE_REQUIRED = "chain:choice_required"  # {chain_id, stage_id, stage_text, choices}
    CHAIN_OBJECTIVE_REACHED = "chain:objective_reached"  # {chain_id, stage_id}

    # Quest notifications kept for subscribers that predate chains
    QUEST_STARTED = "quest:started"  # {quest_id}
    QUEST_STAGE_CHANGED = "quest:stage_changed"  # {quest_id, stage, previous_stage}
    QUEST_COMPLETED = "quest:completed"  # {quest_id}
    QUEST_DATA_CHANGED = "quest:data_changed"  # {quest_id, key, value}

    # Item notifications
    INVENTORY_CHANGED = "items:inventory_changed"  # {action, item_id?}


class ChainAction(str, Enum):
    STARTED = "started"
    ADVANCED = "advanced"
    COMPLETED = "completed"
    RESET = "reset"


class EventBus:
    """Simple publish/subscribe hub."""

    def __init__(self):
        self._listeners: Dict[GameEvent, List[Listener]] = {}

    def on(self, event: GameEvent, listener: Listener) -> Callable[[], None]:
        """Subscribe to an event.

        Returns:
            A function that removes the subscription when called
        """
        self._listeners.setdefault(event, []).append(listener)

        def unsubscribe() -> None:
            self.off(event, listener)

        return unsubscribe

    def off(self, event: GameEvent, listener: Listener) -> None:
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    def emit(self, event: GameEvent, payload: Dict[str, Any]) -> None:
        # copy so listeners may unsubscribe while being notified
        for listener in list(self._listeners.get(event, [])):
            try:
                listener(payload)
            except Exception:
                logger.warning("Listener for %s failed", event.value, exc_info=True)

    def listener_count(self, event: GameEvent) -> int:
        return len(self._listeners.get(event, []))

    def clear(self) -> None:
        self._listeners.clear()
