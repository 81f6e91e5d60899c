"""Chain definition loader.

Discovers chain documents (JSON files) in a directory, validates them and
converts them into LoadedChain objects. A malformed document never stops the
others from loading: every problem becomes a diagnostic line, diagnostics are
logged, and the offending chain is left out of the result.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from jsonschema import Draft7Validator

from config import get_chains_dir
from .model import (
    ChainDefinition, ChainEvent, Choice, DialogueLine, EventLocation,
    FriendshipRequirement, LoadedChain, Objective, Requirement, Reward,
    Stage, Trigger,
)
from .schema import CHAIN_DOCUMENT_SCHEMA

logger = logging.getLogger(__name__)

_VALIDATOR = Draft7Validator(CHAIN_DOCUMENT_SCHEMA)

# camelCase keys written by older content, mapped to the current names
LEGACY_KEYS = {
    "stageNumber": "stage_number",
    "waitDays": "wait_days",
    "mapId": "map_id",
    "mapName": "map_name",
    "tileX": "tile_x",
    "tileY": "tile_y",
    "eventType": "event_type",
    "minCount": "min_count",
    "questId": "quest_id",
    "npcId": "npc_id",
    "itemId": "item_id",
    "questCompleted": "chain_completed",
    "friendshipTier": "friendship_tier",
}


def load_all(directory: Optional[Path] = None) -> List[LoadedChain]:
    """Load every valid chain document from a directory.

    Args:
        directory: Directory to scan (defaults to the configured chains dir)

    Returns:
        Loaded chains in filename order; invalid documents are omitted
    """
    chains, _ = load_chains(directory)
    return chains


def load_chains(directory: Optional[Path] = None) -> Tuple[List[LoadedChain], List[str]]:
    """Load chain documents and return them together with all diagnostics.

    Args:
        directory: Directory to scan (defaults to the configured chains dir)

    Returns:
        Tuple of (loaded chains, diagnostic messages)

    Raises:
        NotADirectoryError: If the path exists but is not a directory
    """
    chains_dir = Path(directory) if directory is not None else get_chains_dir()
    if not chains_dir.exists():
        logger.warning("Chains directory not found: %s", chains_dir)
        return [], []
    if not chains_dir.is_dir():
        raise NotADirectoryError(f"Chains path is not a directory: {chains_dir}")

    chains: List[LoadedChain] = []
    diagnostics: List[str] = []
    seen_ids = set()

    for path in sorted(chains_dir.glob("*.json")):
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            diagnostics.append(f"{path.name}: cannot read file ({e})")
            continue

        chain, errors = parse_chain_document(text, path.name)
        if errors:
            diagnostics.extend(errors)
            continue

        if chain.id in seen_ids:
            diagnostics.append(f"{path.name}: duplicate chain id '{chain.id}'")
            continue

        seen_ids.add(chain.id)
        chains.append(chain)

    if diagnostics:
        logger.warning("Chain validation errors:")
        for message in diagnostics:
            logger.warning("  - %s", message)

    if chains:
        logger.info("Loaded %d event chain(s) from %s", len(chains), chains_dir)

    return chains, diagnostics


def parse_chain_document(text: str, filename: str = "<string>") -> Tuple[Optional[LoadedChain], List[str]]:
    """Parse and validate one chain document.

    Pure transformation from document text to a validated graph, with no
    side effects beyond building the result.

    Args:
        text: Raw JSON document
        filename: Name used as prefix in diagnostics

    Returns:
        Tuple of (LoadedChain or None, diagnostics). The chain is None
        whenever the diagnostics list is not empty.
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        return None, [f"{filename}: JSON parse error - {e}"]

    data = normalize_legacy_keys(data)
    errors = validate_chain(data, filename)
    if errors:
        return None, errors

    return LoadedChain.build(_parse_definition(data)), []


def validate_chain(data: Any, filename: str = "<string>") -> List[str]:
    """Validate a chain document already decoded from JSON.

    Args:
        data: Decoded document (snake_case keys)
        filename: Name used as prefix in diagnostics

    Returns:
        List of validation error messages (empty if valid)
    """
    errors = []

    for error in sorted(_VALIDATOR.iter_errors(data), key=lambda e: [str(p) for p in e.absolute_path]):
        location = "/".join(str(part) for part in error.absolute_path)
        if location:
            errors.append(f"{filename}: {location}: {error.message}")
        else:
            errors.append(f"{filename}: {error.message}")

    if not isinstance(data, dict):
        return errors

    stages = data.get("stages")
    if not isinstance(stages, list):
        return errors

    stage_ids = set()
    for stage in stages:
        if not isinstance(stage, dict) or not isinstance(stage.get("id"), str) or not stage.get("id"):
            continue
        stage_id = stage["id"]
        if stage_id in stage_ids:
            errors.append(f"{filename}: duplicate stage id '{stage_id}'")
        stage_ids.add(stage_id)

    for stage in stages:
        if not isinstance(stage, dict):
            continue
        stage_id = stage.get("id", "?")

        next_id = stage.get("next")
        if isinstance(next_id, str) and next_id and next_id not in stage_ids:
            errors.append(f"{filename}: stage '{stage_id}' references unknown next stage '{next_id}'")

        choices = stage.get("choices")
        if isinstance(choices, list):
            for choice in choices:
                if not isinstance(choice, dict):
                    continue
                target = choice.get("next")
                if isinstance(target, str) and target and target not in stage_ids:
                    errors.append(f"{filename}: stage '{stage_id}' choice references unknown stage '{target}'")

        # terminal stages have no outgoing edges
        if stage.get("end") is True and (next_id or choices):
            errors.append(f"{filename}: stage '{stage_id}' is marked 'end' but declares 'next' or 'choices'")

    return errors


def normalize_legacy_keys(data: Any) -> Any:
    """Rename legacy camelCase authoring keys to their snake_case names.

    Only the known document structure is walked, so dialogue mappings keyed
    by NPC id keep their keys untouched. Anything that does not have the
    expected shape is returned as-is for the validator to report.
    """
    if not isinstance(data, dict):
        return data

    doc = _rename(data)
    if isinstance(doc.get("trigger"), dict):
        doc["trigger"] = _rename(doc["trigger"])

    stages = doc.get("stages")
    if isinstance(stages, list):
        doc["stages"] = [_normalize_stage(stage) for stage in stages]

    return doc


def _rename(obj: Dict[str, Any], extra: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    aliases = dict(LEGACY_KEYS)
    if extra:
        aliases.update(extra)
    result = {}
    for key, value in obj.items():
        new_key = aliases.get(key, key)
        # an explicit current-format key wins over its legacy alias
        if new_key in result and new_key != key:
            continue
        result[new_key] = value
    return result


def _normalize_event(event: Any) -> Any:
    if not isinstance(event, dict):
        return event
    event = _rename(event)
    if isinstance(event.get("location"), dict):
        event["location"] = _rename(event["location"])
    return event


def _normalize_stage(stage: Any) -> Any:
    if not isinstance(stage, dict):
        return stage
    stage = _rename(stage)

    if isinstance(stage.get("objective"), dict):
        stage["objective"] = _rename(stage["objective"])

    if "event" in stage:
        stage["event"] = _normalize_event(stage["event"])

    rewards = stage.get("rewards")
    if isinstance(rewards, list):
        stage["rewards"] = [
            _rename(reward, {"item": "item_id"}) if isinstance(reward, dict) else reward
            for reward in rewards
        ]

    choices = stage.get("choices")
    if isinstance(choices, list):
        normalized = []
        for choice in choices:
            if isinstance(choice, dict):
                choice = dict(choice)
                if isinstance(choice.get("requires"), dict):
                    requires = _rename(choice["requires"], {"quest": "chain"})
                    if isinstance(requires.get("friendship_tier"), dict):
                        requires["friendship_tier"] = _rename(requires["friendship_tier"])
                    choice["requires"] = requires
                if "event" in choice:
                    choice["event"] = _normalize_event(choice["event"])
            normalized.append(choice)
        stage["choices"] = normalized

    return stage


def _parse_definition(data: Dict[str, Any]) -> ChainDefinition:
    """Build the immutable definition from a validated document."""
    return ChainDefinition(
        id=data["id"],
        title=data["title"],
        description=data.get("description", ""),
        type=data["type"],
        trigger=_parse_trigger(data["trigger"]),
        stages=tuple(_parse_stage(stage_data) for stage_data in data["stages"]),
    )


def _parse_trigger(trigger_data: Dict[str, Any]) -> Trigger:
    return Trigger(
        type=trigger_data["type"],
        event_type=trigger_data.get("event_type"),
        min_count=trigger_data.get("min_count"),
        quest_id=trigger_data.get("quest_id"),
        season=trigger_data.get("season"),
        npc_id=trigger_data.get("npc_id"),
        tier=trigger_data.get("tier"),
        map_id=trigger_data.get("map_id"),
        tile_x=trigger_data.get("tile_x"),
        tile_y=trigger_data.get("tile_y"),
        radius=trigger_data.get("radius"),
    )


def _parse_stage(stage_data: Dict[str, Any]) -> Stage:
    objective = None
    if "objective" in stage_data:
        objective_data = stage_data["objective"]
        objective = Objective(
            map_id=objective_data["map_id"],
            tile_x=objective_data["tile_x"],
            tile_y=objective_data["tile_y"],
            radius=objective_data.get("radius"),
            hint=objective_data.get("hint", ""),
        )

    dialogue = {
        npc_id: DialogueLine(text=line["text"], expression=line.get("expression"))
        for npc_id, line in stage_data.get("dialogue", {}).items()
    }

    return Stage(
        id=stage_data["id"],
        text=stage_data["text"],
        stage_number=stage_data.get("stage_number"),
        choices=tuple(_parse_choice(c) for c in stage_data.get("choices", [])),
        next=stage_data.get("next"),
        end=stage_data.get("end", False),
        wait_days=stage_data.get("wait_days"),
        objective=objective,
        rewards=tuple(
            Reward(item_id=r["item_id"], quantity=r["quantity"])
            for r in stage_data.get("rewards", [])
        ),
        dialogue=dialogue,
        event=_parse_event(stage_data.get("event")),
    )


def _parse_choice(choice_data: Dict[str, Any]) -> Choice:
    return Choice(
        text=choice_data["text"],
        next=choice_data["next"],
        requires=_parse_requirement(choice_data.get("requires")),
        event=_parse_event(choice_data.get("event")),
    )


def _parse_requirement(requires_data: Optional[Dict[str, Any]]) -> Optional[Requirement]:
    if not requires_data:
        return None
    friendship = None
    if "friendship_tier" in requires_data:
        tier_data = requires_data["friendship_tier"]
        friendship = FriendshipRequirement(npc_id=tier_data["npc_id"], tier=tier_data["tier"])
    return Requirement(
        chain=requires_data.get("chain"),
        chain_completed=requires_data.get("chain_completed"),
        item=requires_data.get("item"),
        friendship_tier=friendship,
    )


def _parse_event(event_data: Optional[Dict[str, Any]]) -> Optional[ChainEvent]:
    if not event_data:
        return None
    location = None
    if "location" in event_data:
        location = EventLocation(
            map_id=event_data["location"]["map_id"],
            map_name=event_data["location"].get("map_name", ""),
        )
    return ChainEvent(
        title=event_data["title"],
        description=event_data["description"],
        contributor=event_data.get("contributor", ""),
        location=location,
    )
