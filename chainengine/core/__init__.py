"""Core services shared by the chain engine: events, saves, calendar, collaborators."""

from .events import GameEvent, ChainAction, EventBus
from .persistence import SaveError, MemoryStorage, FileStorage, save_progress, load_progress
from .calendar import GameCalendar, Season
from .collaborators import MemoryInventory, NullEventPublisher, RecordingEventPublisher, FriendshipTable
from .publisher import HttpEventPublisher

__all__ = [
    'GameEvent', 'ChainAction', 'EventBus',
    'SaveError', 'MemoryStorage', 'FileStorage', 'save_progress', 'load_progress',
    'GameCalendar', 'Season',
    'MemoryInventory', 'NullEventPublisher', 'RecordingEventPublisher', 'FriendshipTable',
    'HttpEventPublisher',
]
