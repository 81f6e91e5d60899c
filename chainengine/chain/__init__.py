"""Chain engine package: definitions, loading and runtime progression."""

from .model import (
    Trigger, EventLocation, ChainEvent, Objective, Reward, DialogueLine,
    FriendshipRequirement, Requirement, Choice, Stage, ChainDefinition,
    LoadedChain, ChainProgress,
)
from .loader import load_all, load_chains, parse_chain_document, validate_chain
from .requirements import meets, filter_choices
from .handlers import HandlerContext, HandlerRegistry
from .manager import ChainManager, StartResult

__all__ = [
    'Trigger', 'EventLocation', 'ChainEvent', 'Objective', 'Reward', 'DialogueLine',
    'FriendshipRequirement', 'Requirement', 'Choice', 'Stage', 'ChainDefinition',
    'LoadedChain', 'ChainProgress',
    'load_all', 'load_chains', 'parse_chain_document', 'validate_chain',
    'meets', 'filter_choices',
    'HandlerContext', 'HandlerRegistry',
    'ChainManager', 'StartResult',
]
