"""Per-quest stage handlers and typed metadata accessors."""

from chainengine.chain.handlers import HandlerRegistry

from . import althea_chores, witch_garden

QUEST_MODULES = [althea_chores, witch_garden]


def register_all(registry: HandlerRegistry) -> HandlerRegistry:
    """Register the stage handlers of every quest module."""
    for module in QUEST_MODULES:
        module.register(registry)
    return registry


__all__ = ['althea_chores', 'witch_garden', 'register_all', 'QUEST_MODULES']
