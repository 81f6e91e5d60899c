"""The witch's garden: part two of the apprentice questline.

Juniper asks the player to grow three different crops in her kitchen
garden, then teaches them to pickle onions before any potion work.
"""

from __future__ import annotations
import logging
from typing import List

from chainengine.chain.handlers import HandlerContext, HandlerRegistry

logger = logging.getLogger(__name__)

QUEST_ID = "witch_garden"
GARDEN_MAP_ID = "witch_hut"
REQUIRED_UNIQUE_CROPS = 3

# Stage ordinals as reported by ChainManager.get_stage_number
NOT_STARTED = 0
ACTIVE = 1
GARDEN_COMPLETE = 2
PICKLED_ONIONS = 3
COMPLETED = 4

# Metadata keys
CROPS_GROWN = "garden_crops_grown"
ONIONS_DELIVERED = "pickled_onions_delivered"
RECIPE_UNLOCKED = "pickled_onions_recipe_unlocked"


def default_metadata() -> dict:
    return {CROPS_GROWN: [], ONIONS_DELIVERED: False}


async def start(manager) -> bool:
    if manager.is_chain_started(QUEST_ID):
        return False
    return bool(await manager.start_chain(QUEST_ID, default_metadata()))


def get_stage(manager) -> int:
    if not manager.is_chain_started(QUEST_ID):
        return NOT_STARTED
    return manager.get_stage_number(QUEST_ID) or ACTIVE


def get_crops_grown(manager) -> List[str]:
    crops = manager.get_metadata(QUEST_ID, CROPS_GROWN)
    return list(crops) if isinstance(crops, list) else []


def is_garden_complete(manager) -> bool:
    return len(get_crops_grown(manager)) >= REQUIRED_UNIQUE_CROPS


async def record_crop_harvested(manager, crop_id: str) -> bool:
    """Record a crop harvested from the witch's garden.

    Returns:
        True if this was a crop type not seen before
    """
    if not manager.is_chain_active(QUEST_ID):
        return False
    if get_stage(manager) >= GARDEN_COMPLETE:
        return False

    crops = get_crops_grown(manager)
    if crop_id in crops:
        logger.debug("Crop '%s' already recorded", crop_id)
        return False

    crops.append(crop_id)
    manager.set_metadata(QUEST_ID, CROPS_GROWN, crops)
    logger.info("New crop recorded in the witch's garden: %s (%d/%d)",
                crop_id, len(crops), REQUIRED_UNIQUE_CROPS)

    if len(crops) >= REQUIRED_UNIQUE_CROPS:
        await complete_garden_phase(manager)
    return True


async def on_crop_harvested(manager, map_id: str, crop_id: str) -> bool:
    """Harvest hook: only crops picked on the witch's map count."""
    if map_id != GARDEN_MAP_ID:
        return False
    return await record_crop_harvested(manager, crop_id)


async def complete_garden_phase(manager) -> bool:
    if get_stage(manager) >= GARDEN_COMPLETE:
        return False
    return await manager.advance_to_stage(QUEST_ID, "garden_complete")


async def start_pickled_onions_phase(manager) -> bool:
    if get_stage(manager) != GARDEN_COMPLETE:
        return False
    return await manager.advance_to_stage(QUEST_ID, "pickled_onions")


def is_recipe_unlocked(manager) -> bool:
    return manager.get_metadata(QUEST_ID, RECIPE_UNLOCKED) is True


async def deliver_pickled_onions(manager) -> bool:
    """Hand the jar over; this completes the chain."""
    if get_stage(manager) != PICKLED_ONIONS:
        return False
    manager.set_metadata(QUEST_ID, ONIONS_DELIVERED, True)
    return await manager.advance_to_stage(QUEST_ID, "complete")


def unlock_pickled_onions(chain_id: str, stage_id: str, context: HandlerContext) -> None:
    context.chain_manager.set_metadata(chain_id, RECIPE_UNLOCKED, True)
    logger.info("Pickled onions recipe unlocked")


def register(registry: HandlerRegistry) -> None:
    registry.register(QUEST_ID, "pickled_onions", unlock_pickled_onions)
