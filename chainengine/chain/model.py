"""Event chain data models.

This module defines the core data structures for the chain engine: the
immutable definition graph (ChainDefinition, Stage, Choice and their parts)
loaded once per process, and the mutable ChainProgress record kept per
started chain.
"""

from __future__ import annotations
from dataclasses import dataclass, field, asdict
from types import MappingProxyType
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple

ChainType = Literal["discovery", "achievement", "seasonal", "community", "mystery"]
TriggerType = Literal["manual", "event_count", "quest_complete", "seasonal", "friendship", "tile"]

VALID_CHAIN_TYPES = ("discovery", "achievement", "seasonal", "community", "mystery")
VALID_TRIGGER_TYPES = ("manual", "event_count", "quest_complete", "seasonal", "friendship", "tile")


@dataclass(frozen=True)
class Trigger:
    """How a chain may be started without an explicit call.

    Only the fields relevant to ``type`` are set; ``tile`` triggers carry a
    map id, tile coordinates and an optional proximity radius.
    """
    type: TriggerType = "manual"
    event_type: Optional[str] = None
    min_count: Optional[int] = None
    quest_id: Optional[str] = None
    season: Optional[str] = None
    npc_id: Optional[str] = None
    tier: Optional[str] = None
    map_id: Optional[str] = None
    tile_x: Optional[float] = None
    tile_y: Optional[float] = None
    radius: Optional[float] = None


@dataclass(frozen=True)
class EventLocation:
    map_id: str
    map_name: str = ""


@dataclass(frozen=True)
class ChainEvent:
    """World-event announcement published on stage entry or choice."""
    title: str
    description: str
    contributor: str = ""
    location: Optional[EventLocation] = None


@dataclass(frozen=True)
class Objective:
    """A "go to location" goal checked against the player's position."""
    map_id: str
    tile_x: float
    tile_y: float
    type: Literal["go_to"] = "go_to"
    radius: Optional[float] = None
    hint: str = ""


@dataclass(frozen=True)
class Reward:
    item_id: str
    quantity: int = 1


@dataclass(frozen=True)
class DialogueLine:
    text: str
    expression: Optional[str] = None


@dataclass(frozen=True)
class FriendshipRequirement:
    npc_id: str
    tier: str


@dataclass(frozen=True)
class Requirement:
    """Conjunction of gating clauses; an empty requirement is always met.

    Examples:
        {"item": "basket"}
        {"chain_completed": "althea_chores", "item": "tea"}
    """
    chain: Optional[str] = None  # chain must have been started
    chain_completed: Optional[str] = None
    item: Optional[str] = None
    friendship_tier: Optional[FriendshipRequirement] = None

    def is_empty(self) -> bool:
        return not (self.chain or self.chain_completed or self.item or self.friendship_tier)


@dataclass(frozen=True)
class Choice:
    """A labelled edge the player can select at a branching stage."""
    text: str
    next: str
    requires: Optional[Requirement] = None
    event: Optional[ChainEvent] = None


@dataclass(frozen=True)
class Stage:
    """A single node in a chain's graph."""
    id: str
    text: str
    stage_number: Optional[int] = None
    choices: Tuple[Choice, ...] = ()
    next: Optional[str] = None
    end: bool = False
    wait_days: Optional[int] = None
    objective: Optional[Objective] = None
    rewards: Tuple[Reward, ...] = ()
    dialogue: Mapping[str, DialogueLine] = field(default_factory=dict)
    event: Optional[ChainEvent] = None

    @property
    def has_choices(self) -> bool:
        return len(self.choices) > 0


@dataclass(frozen=True)
class ChainDefinition:
    id: str
    title: str
    type: ChainType
    trigger: Trigger
    stages: Tuple[Stage, ...]
    description: str = ""

    @property
    def first_stage(self) -> Optional[Stage]:
        return self.stages[0] if self.stages else None

    def stage_ids(self) -> List[str]:
        return [stage.id for stage in self.stages]


@dataclass(frozen=True)
class LoadedChain:
    """A validated definition plus its stage lookup, built once at load time."""
    definition: ChainDefinition
    stage_index: Mapping[str, Stage]

    @classmethod
    def build(cls, definition: ChainDefinition) -> "LoadedChain":
        index = {stage.id: stage for stage in definition.stages}
        return cls(definition=definition, stage_index=MappingProxyType(index))

    @property
    def id(self) -> str:
        return self.definition.id

    def get_stage(self, stage_id: str) -> Optional[Stage]:
        return self.stage_index.get(stage_id)

    def stage_number(self, stage_id: str) -> int:
        """Explicit stage_number if declared, else the 1-based list position (0 if unknown)."""
        stage = self.stage_index.get(stage_id)
        if stage is None:
            return 0
        if stage.stage_number is not None:
            return stage.stage_number
        for i, candidate in enumerate(self.definition.stages):
            if candidate.id == stage_id:
                return i + 1
        return 0


@dataclass
class ChainProgress:
    """Mutable progress record for one started chain.

    Owned exclusively by the ChainManager; everyone else only sees copies.
    Days are game-calendar days, not wall-clock time.
    """
    chain_id: str
    current_stage_id: str
    started_day: int
    stage_entered_day: int
    choices_made: Dict[str, str] = field(default_factory=dict)  # stage id -> chosen choice text
    completed: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)  # quest-specific counters and flags

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChainProgress":
        """Rebuild a progress record from its serialized form.

        Raises:
            KeyError: If a mandatory field is missing
            ValueError: If a field has an unusable value
        """
        return cls(
            chain_id=str(data["chain_id"]),
            current_stage_id=str(data["current_stage_id"]),
            started_day=int(data["started_day"]),
            stage_entered_day=int(data["stage_entered_day"]),
            choices_made=dict(data.get("choices_made") or {}),
            completed=bool(data.get("completed", False)),
            metadata=dict(data.get("metadata") or {}),
        )
