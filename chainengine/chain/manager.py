"""Chain manager: the runtime side of the event chain engine.

Tracks the player's progress through every loaded chain, moves chains from
stage to stage, publishes world events, hands out stage rewards, runs stage
handlers and emits notifications. Progress is written through to durable
storage after every mutation.

Lifecycle per chain: not started -> active -> completed. Completed is
terminal. Invalid operations (unknown ids, bad choice index, operating on a
chain that is not active) return a falsy result instead of raising, so a
content mistake never crashes the game loop.
"""

from __future__ import annotations
import copy
import json
import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from config import get_storage_key
from ..core.events import ChainAction, EventBus, GameEvent
from ..core.persistence import SaveError, load_progress, save_progress
from .handlers import HandlerContext, HandlerRegistry
from .model import (
    ChainDefinition, ChainEvent, ChainProgress, Choice, DialogueLine,
    LoadedChain, Reward, Stage,
)
from .requirements import filter_choices
from .triggers import auto_advance_due, objective_reached, tile_trigger_fires

logger = logging.getLogger(__name__)


class StartResult(Enum):
    STARTED = "started"
    ALREADY_STARTED = "already_started"
    UNKNOWN_CHAIN = "unknown_chain"
    INVALID_METADATA = "invalid_metadata"

    def __bool__(self) -> bool:
        return self is StartResult.STARTED


class ChainManager:
    """Owns all chain progress for one player session.

    Args:
        chains: Loaded chain definitions, in the order used for tie-breaking
        inventory: Collaborator with add_item(), has_item() and save()
        publisher: Collaborator with async publish_event()
        calendar: Collaborator with get_current_day()
        storage: Key/value storage with get_item() and set_item()
        handlers: Stage handler registry (a new empty one if omitted)
        event_bus: Notification bus (a new one if omitted)
        friendship: Optional collaborator with meets_tier(npc_id, tier)
        storage_key: Key of the persisted progress map
    """

    def __init__(self, chains: List[LoadedChain], inventory, publisher, calendar, storage,
                 handlers: Optional[HandlerRegistry] = None,
                 event_bus: Optional[EventBus] = None,
                 friendship=None,
                 storage_key: Optional[str] = None):
        self.inventory = inventory
        self.publisher = publisher
        self.calendar = calendar
        self.storage = storage
        self.friendship = friendship
        self.handlers = handlers if handlers is not None else HandlerRegistry()
        self.events = event_bus if event_bus is not None else EventBus()
        self.storage_key = storage_key or get_storage_key()

        self._chains: List[LoadedChain] = list(chains)
        self._chain_map: Dict[str, LoadedChain] = {c.id: c for c in self._chains}
        self._progress: Dict[str, ChainProgress] = {}
        self._initialised = False

    # ---------------- Initialisation ----------------

    def initialise(self) -> None:
        """Restore saved progress. Safe to call more than once."""
        if self._initialised:
            return
        self._initialised = True
        self._restore_progress()
        logger.info("Chain manager initialised with %d chain(s), %d active",
                    len(self._chains), len(self.get_active_chains()))

    # ---------------- Chain access ----------------

    def get_all_chains(self) -> List[ChainDefinition]:
        return [c.definition for c in self._chains]

    def get_chain(self, chain_id: str) -> Optional[LoadedChain]:
        return self._chain_map.get(chain_id)

    def has_chain(self, chain_id: str) -> bool:
        return chain_id in self._chain_map

    def get_progress(self, chain_id: str) -> Optional[ChainProgress]:
        """Snapshot of a chain's progress (None if not started)."""
        progress = self._progress.get(chain_id)
        return copy.deepcopy(progress) if progress is not None else None

    def get_all_progress(self) -> Dict[str, ChainProgress]:
        return copy.deepcopy(self._progress)

    def get_active_chains(self) -> List[ChainProgress]:
        return [copy.deepcopy(p) for p in self._progress.values() if not p.completed]

    def get_completed_chains(self) -> List[ChainProgress]:
        return [copy.deepcopy(p) for p in self._progress.values() if p.completed]

    def is_chain_started(self, chain_id: str) -> bool:
        return chain_id in self._progress

    def is_chain_active(self, chain_id: str) -> bool:
        progress = self._progress.get(chain_id)
        return progress is not None and not progress.completed

    def is_chain_completed(self, chain_id: str) -> bool:
        progress = self._progress.get(chain_id)
        return progress is not None and progress.completed

    def get_current_stage(self, chain_id: str) -> Optional[Stage]:
        chain = self._chain_map.get(chain_id)
        progress = self._progress.get(chain_id)
        if not chain or not progress:
            return None
        return chain.get_stage(progress.current_stage_id)

    def get_stage_number(self, chain_id: str) -> int:
        """Ordinal of the current stage for progress displays (0 if not started)."""
        chain = self._chain_map.get(chain_id)
        progress = self._progress.get(chain_id)
        if not chain or not progress:
            return 0
        return chain.stage_number(progress.current_stage_id)

    def get_stage_rewards(self, chain_id: str) -> List[Reward]:
        stage = self.get_current_stage(chain_id)
        return list(stage.rewards) if stage else []

    def get_available_choices(self, chain_id: str) -> List[Choice]:
        """Choices at the current stage whose requirements are met right now."""
        progress = self._progress.get(chain_id)
        if not progress or progress.completed:
            return []
        stage = self.get_current_stage(chain_id)
        if not stage or not stage.has_choices:
            return []
        return self._filter_choices(stage)

    def get_chain_dialogue(self, npc_id: str) -> List[DialogueLine]:
        """Dialogue injected into an NPC by the current stage of every active chain."""
        lines = []
        for chain_id, progress in self._progress.items():
            if progress.completed:
                continue
            stage = self.get_current_stage(chain_id)
            if stage and npc_id in stage.dialogue:
                lines.append(stage.dialogue[npc_id])
        return lines

    # ---------------- Metadata ----------------

    def set_metadata(self, chain_id: str, key: str, value: Any) -> bool:
        """Store a quest-specific value on a started chain's progress.

        Values must be JSON serializable: the whole progress map is saved as
        one record, so a single bad value would block every later save.
        """
        progress = self._progress.get(chain_id)
        if progress is None:
            return False
        if not _serializable(value):
            logger.warning("Rejected metadata '%s' for chain '%s': not JSON serializable", key, chain_id)
            return False

        progress.metadata[key] = copy.deepcopy(value)
        self._save()
        self.events.emit(GameEvent.QUEST_DATA_CHANGED, {"quest_id": chain_id, "key": key, "value": value})
        return True

    def get_metadata(self, chain_id: str, key: str, default: Any = None) -> Any:
        progress = self._progress.get(chain_id)
        if progress is None or key not in progress.metadata:
            return default
        return copy.deepcopy(progress.metadata[key])

    # ---------------- Chain lifecycle ----------------

    async def start_chain(self, chain_id: str, initial_metadata: Optional[Dict[str, Any]] = None) -> StartResult:
        """Start a chain at its first stage.

        Args:
            chain_id: ID of chain to start
            initial_metadata: Optional starting values for the metadata bag

        Returns:
            StartResult (truthy only when the chain was started)
        """
        chain = self._chain_map.get(chain_id)
        if chain is None:
            logger.warning("Unknown chain: %s", chain_id)
            return StartResult.UNKNOWN_CHAIN

        if chain_id in self._progress:
            logger.debug("Chain already started: %s", chain_id)
            return StartResult.ALREADY_STARTED

        if initial_metadata and not _serializable(initial_metadata):
            logger.warning("Rejected initial metadata for chain '%s': not JSON serializable", chain_id)
            return StartResult.INVALID_METADATA

        first_stage = chain.definition.first_stage
        game_day = self._current_day()
        progress = ChainProgress(
            chain_id=chain_id,
            current_stage_id=first_stage.id,
            started_day=game_day,
            stage_entered_day=game_day,
            metadata=copy.deepcopy(initial_metadata) if initial_metadata else {},
        )
        self._progress[chain_id] = progress
        self._save()

        await self._publish_event(chain, first_stage.event)
        self._distribute_rewards(chain_id, first_stage)
        await self.handlers.execute(chain_id, first_stage.id, HandlerContext(chain_manager=self))

        self._emit_update(chain_id, first_stage.id, ChainAction.STARTED)
        self.events.emit(GameEvent.QUEST_STARTED, {"quest_id": chain_id})

        still_here = self._still_at(chain_id, progress, first_stage.id)
        if still_here and first_stage.end:
            progress.completed = True
            self._emit_update(chain_id, first_stage.id, ChainAction.COMPLETED)
            self.events.emit(GameEvent.QUEST_COMPLETED, {"quest_id": chain_id})
        self.events.emit(GameEvent.QUEST_STAGE_CHANGED, {
            "quest_id": chain_id,
            "stage": chain.stage_number(first_stage.id),
            "previous_stage": 0,
        })
        if still_here and not first_stage.end:
            self._emit_choice_if_needed(chain, first_stage)
        self._save()

        logger.info("Started chain: %s", chain.definition.title)
        return StartResult.STARTED

    async def make_choice(self, chain_id: str, choice_index: int) -> bool:
        """Pick a choice at the current branching stage.

        The index refers to get_available_choices(), i.e. the list after
        requirement filtering, never the raw list declared in the document.
        """
        chain = self._chain_map.get(chain_id)
        progress = self._progress.get(chain_id)
        if not chain or not progress or progress.completed:
            return False

        current_stage = chain.get_stage(progress.current_stage_id)
        if not current_stage or not current_stage.has_choices:
            logger.warning("Stage '%s' of chain '%s' has no choices", progress.current_stage_id, chain_id)
            return False

        available = self._filter_choices(current_stage)
        if not 0 <= choice_index < len(available):
            logger.warning("Invalid choice index %s for chain '%s'", choice_index, chain_id)
            return False
        choice = available[choice_index]

        progress.choices_made[current_stage.id] = choice.text
        await self._publish_event(chain, choice.event)

        return await self.advance_to_stage(chain_id, choice.next)

    async def advance_to_stage(self, chain_id: str, stage_id: str) -> bool:
        """Move an active chain to the given stage.

        Effects, in order: stage pointer update (persisted), world event,
        rewards, stage handler, completion or advance notifications, stage
        change notification, final save.
        """
        chain = self._chain_map.get(chain_id)
        progress = self._progress.get(chain_id)
        if not chain or not progress or progress.completed:
            return False

        next_stage = chain.get_stage(stage_id)
        if next_stage is None:
            logger.warning("Unknown stage '%s' in chain '%s'", stage_id, chain_id)
            return False

        previous_stage_num = chain.stage_number(progress.current_stage_id)
        progress.current_stage_id = stage_id
        progress.stage_entered_day = self._current_day()
        self._save()

        await self._publish_event(chain, next_stage.event)
        self._distribute_rewards(chain_id, next_stage)
        await self.handlers.execute(chain_id, stage_id, HandlerContext(chain_manager=self))

        if not self._still_at(chain_id, progress, stage_id):
            # the handler already moved or reset the chain; its own transition reported the rest
            logger.debug("Chain '%s' left stage '%s' during its handler", chain_id, stage_id)
            self.events.emit(GameEvent.QUEST_STAGE_CHANGED, {
                "quest_id": chain_id,
                "stage": chain.stage_number(stage_id),
                "previous_stage": previous_stage_num,
            })
            self._save()
            return True

        if next_stage.end:
            progress.completed = True
            self._emit_update(chain_id, stage_id, ChainAction.COMPLETED)
            self.events.emit(GameEvent.QUEST_COMPLETED, {"quest_id": chain_id})
            logger.info("Chain completed: %s", chain.definition.title)
        else:
            self._emit_update(chain_id, stage_id, ChainAction.ADVANCED)
            self._emit_choice_if_needed(chain, next_stage)

        self.events.emit(GameEvent.QUEST_STAGE_CHANGED, {
            "quest_id": chain_id,
            "stage": chain.stage_number(stage_id),
            "previous_stage": previous_stage_num,
        })

        self._save()
        return True

    async def check_auto_advance(self) -> List[str]:
        """Advance linear stages whose wait_days have elapsed.

        Called on every game tick or on a coarser timer. Stages with choices
        are never advanced here.

        Returns:
            IDs of the chains that advanced
        """
        game_day = self._current_day()
        advanced = []

        for chain_id, progress in list(self._progress.items()):
            if progress.completed:
                continue
            stage = self.get_current_stage(chain_id)
            if stage is None:
                continue
            if auto_advance_due(stage, progress, game_day):
                if await self.advance_to_stage(chain_id, stage.next):
                    advanced.append(chain_id)

        return advanced

    async def check_tile_triggers(self, map_id: str, x: float, y: float) -> Optional[str]:
        """Auto-start the first not-yet-started tile chain near the player.

        Returns:
            ID of the chain started, or None
        """
        for chain in self._chains:
            if chain.id in self._progress:
                continue
            if tile_trigger_fires(chain.definition.trigger, map_id, x, y):
                if await self.start_chain(chain.id):
                    return chain.id
        return None

    async def check_objectives(self, map_id: str, x: float, y: float) -> Optional[str]:
        """Resolve the first active go_to objective reached by the player.

        Emits an objective-reached notification and, if the stage has a
        ``next``, advances to it.

        Returns:
            ID of the chain whose objective was reached, or None
        """
        for chain_id, progress in list(self._progress.items()):
            if progress.completed:
                continue
            stage = self.get_current_stage(chain_id)
            if stage is None or not objective_reached(stage.objective, map_id, x, y):
                continue

            self.events.emit(GameEvent.CHAIN_OBJECTIVE_REACHED, {
                "chain_id": chain_id,
                "stage_id": stage.id,
            })
            if stage.next:
                await self.advance_to_stage(chain_id, stage.next)
            return chain_id
        return None

    def reset_chain(self, chain_id: str) -> bool:
        """Discard a chain's progress so it counts as never started (developer tool)."""
        if self._progress.pop(chain_id, None) is None:
            return False
        self._save()
        self._emit_update(chain_id, "", ChainAction.RESET)
        logger.info("Reset chain: %s", chain_id)
        return True

    # ---------------- Internals ----------------

    def _still_at(self, chain_id: str, progress: ChainProgress, stage_id: str) -> bool:
        return self._progress.get(chain_id) is progress and progress.current_stage_id == stage_id

    def _filter_choices(self, stage: Stage) -> List[Choice]:
        return filter_choices(stage.choices, self, self.inventory, self.friendship)

    def _emit_update(self, chain_id: str, stage_id: str, action: ChainAction) -> None:
        self.events.emit(GameEvent.CHAIN_UPDATED, {
            "chain_id": chain_id,
            "stage_id": stage_id,
            "action": action.value,
        })

    def _emit_choice_if_needed(self, chain: LoadedChain, stage: Stage) -> None:
        if not stage.has_choices:
            return
        available = self._filter_choices(stage)
        if not available:
            return
        self.events.emit(GameEvent.CHAIN_CHOICE_REQUIRED, {
            "chain_id": chain.id,
            "stage_id": stage.id,
            "stage_text": stage.text,
            "choices": [{"text": c.text, "next": c.next} for c in available],
        })

    def _distribute_rewards(self, chain_id: str, stage: Stage) -> None:
        if not stage.rewards:
            return

        granted = []
        for reward in stage.rewards:
            try:
                self.inventory.add_item(reward.item_id, reward.quantity)
            except Exception:
                logger.warning("Failed to grant %sx %s (chain: %s)",
                               reward.quantity, reward.item_id, chain_id, exc_info=True)
                continue
            granted.append(reward.item_id)
            logger.debug("Rewarded %sx %s (chain: %s)", reward.quantity, reward.item_id, chain_id)

        try:
            self.inventory.save()
        except Exception:
            logger.warning("Failed to save inventory after rewards (chain: %s)", chain_id, exc_info=True)

        if granted:
            self.events.emit(GameEvent.INVENTORY_CHANGED, {"action": "add", "item_ids": granted})

    async def _publish_event(self, chain: LoadedChain, event: Optional[ChainEvent]) -> None:
        if event is None:
            return

        location = None
        if event.location is not None:
            location = {"map_id": event.location.map_id, "map_name": event.location.map_name}

        try:
            ok = await self.publisher.publish_event(
                chain.definition.type, event.title, event.description, location
            )
            if ok is False:
                logger.warning("World event '%s' was not published (chain: %s)", event.title, chain.id)
        except Exception:
            logger.warning("Failed to publish world event '%s' (chain: %s)",
                           event.title, chain.id, exc_info=True)

    def _current_day(self) -> int:
        try:
            return int(self.calendar.get_current_day())
        except Exception:
            logger.warning("Game calendar unavailable, assuming day 1", exc_info=True)
            return 1

    def _save(self) -> None:
        try:
            save_progress(self.storage, self.storage_key, self._progress)
        except SaveError as e:
            logger.warning("Failed to save chain progress: %s", e)

    def _restore_progress(self) -> None:
        self._progress.clear()
        try:
            entries = load_progress(self.storage, self.storage_key)
        except SaveError as e:
            logger.warning("Failed to load chain progress: %s", e)
            return

        for chain_id, entry in entries.items():
            chain = self._chain_map.get(chain_id)
            if chain is None:
                logger.info("Dropping saved progress for removed chain '%s'", chain_id)
                continue
            try:
                progress = ChainProgress.from_dict(entry)
            except (KeyError, ValueError, TypeError):
                logger.warning("Dropping unreadable saved progress for chain '%s'", chain_id)
                continue
            if chain.get_stage(progress.current_stage_id) is None:
                logger.warning("Dropping saved progress for chain '%s': stage '%s' no longer exists",
                               chain_id, progress.current_stage_id)
                continue
            progress.chain_id = chain_id
            self._progress[chain_id] = progress


def _serializable(value: Any) -> bool:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return False
    return True
