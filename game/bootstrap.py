"""Bootstrap utilities: load chain documents and build the session's ChainManager.

This is the only place that wires collaborators together. Everything that
needs chain progress receives the manager built here.
"""
from __future__ import annotations
import logging
from pathlib import Path
from typing import Optional

from chainengine.chain.handlers import HandlerRegistry
from chainengine.chain.loader import load_all
from chainengine.chain.manager import ChainManager
from chainengine.core.calendar import GameCalendar
from chainengine.core.collaborators import MemoryInventory, NullEventPublisher
from chainengine.core.events import EventBus
from chainengine.core.persistence import FileStorage
from chainengine.core.publisher import HttpEventPublisher
from config import get_events_enabled, get_events_url
from game.quest_handlers import register_all

logger = logging.getLogger(__name__)


def build_publisher(contributor: str = ""):
    """HTTP publisher when a backend is configured, otherwise a logging stand-in."""
    if get_events_enabled() and get_events_url():
        return HttpEventPublisher(contributor=contributor)
    return NullEventPublisher()


def build_chain_manager(chains_dir: Optional[Path] = None,
                        storage=None,
                        inventory=None,
                        publisher=None,
                        calendar=None,
                        friendship=None,
                        event_bus: Optional[EventBus] = None,
                        contributor: str = "") -> ChainManager:
    """Create and initialise the single ChainManager of a game session.

    Any collaborator left as None gets its default implementation: saves on
    disk under the configured saves directory, an inventory restored from
    those saves, a fresh calendar and the configured world-event publisher.
    """
    chains = load_all(chains_dir)

    if storage is None:
        storage = FileStorage()
    if inventory is None:
        inventory = MemoryInventory.restore(storage)
    if publisher is None:
        publisher = build_publisher(contributor)
    if calendar is None:
        calendar = GameCalendar()

    handlers = register_all(HandlerRegistry())

    manager = ChainManager(
        chains,
        inventory=inventory,
        publisher=publisher,
        calendar=calendar,
        storage=storage,
        handlers=handlers,
        event_bus=event_bus,
        friendship=friendship,
    )
    manager.initialise()
    logger.info("-- %d event chain(s) ready, %d handler(s) registered --", len(chains), len(handlers))
    return manager
