"""Althea's chores: tea, cookies and a house full of cobwebs.

Before Althea tells the player where the witch lives, the player has to
brew her tea, bake her cookies and clean every cobweb in her cottage. All
state lives in the chain's metadata bag; the functions below are the typed
view over it.
"""

from __future__ import annotations
import logging
from typing import List

from chainengine.chain.handlers import HandlerContext, HandlerRegistry
from chainengine.core.events import GameEvent

logger = logging.getLogger(__name__)

QUEST_ID = "althea_chores"
TOTAL_COBWEBS = 5
FEATHER_DUSTER = "tool_feather_duster"

QUEST_ITEMS = {
    "tea": "tea",
    "cookies": "cookies",
}

# Metadata keys
COBWEBS_CLEANED = "cobwebs_cleaned"
TEA_DELIVERED = "tea_delivered"
COOKIES_DELIVERED = "cookies_delivered"


def default_metadata() -> dict:
    return {
        COBWEBS_CLEANED: [False] * TOTAL_COBWEBS,
        TEA_DELIVERED: False,
        COOKIES_DELIVERED: False,
    }


def is_active(manager) -> bool:
    return manager.is_chain_active(QUEST_ID)


async def start(manager) -> bool:
    """Start the chores with a fresh checklist (no-op if already started)."""
    if manager.is_chain_started(QUEST_ID):
        return False
    return bool(await manager.start_chain(QUEST_ID, default_metadata()))


def get_cobwebs_cleaned(manager) -> List[bool]:
    data = manager.get_metadata(QUEST_ID, COBWEBS_CLEANED)
    if isinstance(data, list) and len(data) == TOTAL_COBWEBS:
        return [bool(flag) for flag in data]
    return [False] * TOTAL_COBWEBS


def get_cobwebs_remaining(manager) -> int:
    return get_cobwebs_cleaned(manager).count(False)


def are_all_cobwebs_cleaned(manager) -> bool:
    return get_cobwebs_remaining(manager) == 0


async def mark_cobweb_cleaned(manager, cobweb_id: int) -> bool:
    """Record one cobweb as cleaned.

    Returns:
        True if the cobweb was newly cleaned
    """
    if not is_active(manager):
        return False
    if not 0 <= cobweb_id < TOTAL_COBWEBS:
        logger.warning("Invalid cobweb id: %s", cobweb_id)
        return False

    cleaned = get_cobwebs_cleaned(manager)
    if cleaned[cobweb_id]:
        return False

    cleaned[cobweb_id] = True
    manager.set_metadata(QUEST_ID, COBWEBS_CLEANED, cleaned)
    logger.debug("Cobweb %d cleaned (%d remaining)", cobweb_id, cleaned.count(False))

    await check_completion(manager)
    return True


def is_tea_delivered(manager) -> bool:
    return manager.get_metadata(QUEST_ID, TEA_DELIVERED) is True


async def mark_tea_delivered(manager) -> bool:
    if not is_active(manager):
        return False
    manager.set_metadata(QUEST_ID, TEA_DELIVERED, True)
    await check_completion(manager)
    return True


def are_cookies_delivered(manager) -> bool:
    return manager.get_metadata(QUEST_ID, COOKIES_DELIVERED) is True


async def mark_cookies_delivered(manager) -> bool:
    if not is_active(manager):
        return False
    manager.set_metadata(QUEST_ID, COOKIES_DELIVERED, True)
    await check_completion(manager)
    return True


async def check_completion(manager) -> bool:
    """Move to 'chores_done' once every chore is done.

    That stage is not the end of the chain: the final conversation with
    Althea completes it.
    """
    if not is_active(manager):
        return False

    progress = manager.get_progress(QUEST_ID)
    if progress and progress.current_stage_id == "chores_done":
        return False

    if are_all_cobwebs_cleaned(manager) and is_tea_delivered(manager) and are_cookies_delivered(manager):
        logger.info("All of Althea's chores done")
        return await manager.advance_to_stage(QUEST_ID, "chores_done")
    return False


async def reveal_witch_location(manager) -> bool:
    """Althea's story after the chores; completes the chain."""
    progress = manager.get_progress(QUEST_ID)
    if progress is None or progress.completed or progress.current_stage_id != "chores_done":
        return False
    return await manager.advance_to_stage(QUEST_ID, "complete")


def grant_feather_duster(chain_id: str, stage_id: str, context: HandlerContext) -> None:
    """Give the player a feather duster when the chores begin."""
    manager = context.chain_manager
    inventory = manager.inventory
    if inventory.has_item(FEATHER_DUSTER):
        return
    inventory.add_item(FEATHER_DUSTER, 1)
    inventory.save()
    manager.events.emit(GameEvent.INVENTORY_CHANGED, {"action": "add", "item_ids": [FEATHER_DUSTER]})
    logger.debug("Granted feather duster")


def register(registry: HandlerRegistry) -> None:
    registry.register(QUEST_ID, "active", grant_feather_duster)
