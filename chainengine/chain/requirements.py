"""Requirement evaluation for chain choices.

Pure predicates deciding which choices are currently reachable. Every call
re-evaluates against live external state (inventory, other chains'
progress, friendship tiers), so two calls may disagree if that state changed
in between.

Supported clauses:
- chain: the named chain has been started
- chain_completed: the named chain has been completed
- item: the player holds the item
- friendship_tier: the player has reached a tier with an NPC
"""

from typing import Iterable, List, Optional
from .model import Choice, Requirement


def meets(requires: Optional[Requirement], progress, inventory, friendship=None) -> bool:
    """Check whether a requirement is satisfied.

    Args:
        requires: Requirement to evaluate (None means always reachable)
        progress: Object exposing is_chain_started(id) and is_chain_completed(id)
        inventory: Inventory collaborator exposing has_item(item_id)
        friendship: Optional collaborator exposing meets_tier(npc_id, tier);
            friendship clauses are treated as met when it is None

    Returns:
        True if every clause of the requirement holds
    """
    if requires is None or requires.is_empty():
        return True

    if requires.chain and not progress.is_chain_started(requires.chain):
        return False

    if requires.chain_completed and not progress.is_chain_completed(requires.chain_completed):
        return False

    if requires.item and not inventory.has_item(requires.item):
        return False

    if requires.friendship_tier and friendship is not None:
        tier = requires.friendship_tier
        if not friendship.meets_tier(tier.npc_id, tier.tier):
            return False

    return True


def filter_choices(choices: Iterable[Choice], progress, inventory, friendship=None) -> List[Choice]:
    """Return the choices whose requirements are met, in declaration order."""
    return [c for c in choices if meets(c.requires, progress, inventory, friendship)]
