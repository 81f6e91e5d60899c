"""JSON schema definition for chain documents.

Covers the structural rules of a chain document (required fields, closed
enumerations, tile trigger and objective coordinates). Graph rules that need
the whole stage list (unique ids, resolvable references) are checked by the
loader itself.
"""

from ..core.persistence import METADATA_KEY
from .model import VALID_CHAIN_TYPES, VALID_TRIGGER_TYPES

_NON_EMPTY_STRING = {"type": "string", "minLength": 1}
_COORD = {"type": "number"}

_EVENT_SCHEMA = {
    "type": "object",
    "required": ["title", "description"],
    "properties": {
        "title": _NON_EMPTY_STRING,
        "description": {"type": "string"},
        "contributor": {"type": "string"},
        "location": {
            "type": "object",
            "required": ["map_id"],
            "properties": {
                "map_id": _NON_EMPTY_STRING,
                "map_name": {"type": "string"},
            },
        },
    },
}

_REQUIREMENT_SCHEMA = {
    "type": "object",
    "properties": {
        "chain": _NON_EMPTY_STRING,
        "chain_completed": _NON_EMPTY_STRING,
        "item": _NON_EMPTY_STRING,
        "friendship_tier": {
            "type": "object",
            "required": ["npc_id", "tier"],
            "properties": {
                "npc_id": _NON_EMPTY_STRING,
                "tier": _NON_EMPTY_STRING,
            },
        },
    },
    "additionalProperties": False,
}

_OBJECTIVE_SCHEMA = {
    "type": "object",
    "required": ["type", "map_id", "tile_x", "tile_y"],
    "properties": {
        "type": {"const": "go_to"},
        "map_id": _NON_EMPTY_STRING,
        "tile_x": _COORD,
        "tile_y": _COORD,
        "radius": {"type": "number", "minimum": 0},
        "hint": {"type": "string"},
    },
}

_STAGE_SCHEMA = {
    "type": "object",
    "required": ["id", "text"],
    "properties": {
        "id": _NON_EMPTY_STRING,
        "text": _NON_EMPTY_STRING,
        "stage_number": {"type": "integer"},
        "next": _NON_EMPTY_STRING,
        "end": {"type": "boolean"},
        "wait_days": {"type": "integer", "minimum": 0},
        "choices": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["text", "next"],
                "properties": {
                    "text": _NON_EMPTY_STRING,
                    "next": _NON_EMPTY_STRING,
                    "requires": _REQUIREMENT_SCHEMA,
                    "event": _EVENT_SCHEMA,
                },
            },
        },
        "objective": _OBJECTIVE_SCHEMA,
        "rewards": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["item_id", "quantity"],
                "properties": {
                    "item_id": _NON_EMPTY_STRING,
                    "quantity": {"type": "integer", "minimum": 1},
                },
            },
        },
        "dialogue": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "required": ["text"],
                "properties": {
                    "text": _NON_EMPTY_STRING,
                    "expression": {"type": "string"},
                },
            },
        },
        "event": _EVENT_SCHEMA,
    },
}

CHAIN_DOCUMENT_SCHEMA = {
    "type": "object",
    "required": ["id", "title", "type", "trigger", "stages"],
    "properties": {
        # the progress record keeps its version entry under this key
        "id": {"type": "string", "minLength": 1, "not": {"const": METADATA_KEY}},
        "title": _NON_EMPTY_STRING,
        "description": {"type": "string"},
        "type": {"enum": list(VALID_CHAIN_TYPES)},
        "trigger": {
            "type": "object",
            "required": ["type"],
            "properties": {
                "type": {"enum": list(VALID_TRIGGER_TYPES)},
                "event_type": {"type": "string"},
                "min_count": {"type": "integer", "minimum": 0},
                "quest_id": {"type": "string"},
                "season": {"type": "string"},
                "npc_id": {"type": "string"},
                "tier": {"type": "string"},
                "map_id": _NON_EMPTY_STRING,
                "tile_x": _COORD,
                "tile_y": _COORD,
                "radius": {"type": "number", "minimum": 0},
            },
            # tile triggers must say where they fire
            "if": {"properties": {"type": {"const": "tile"}}, "required": ["type"]},
            "then": {"required": ["map_id", "tile_x", "tile_y"]},
        },
        "stages": {
            "type": "array",
            "minItems": 1,
            "items": _STAGE_SCHEMA,
        },
    },
}
