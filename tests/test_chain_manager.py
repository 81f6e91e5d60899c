"""Test the chain manager lifecycle."""

import asyncio
import copy
import json
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from chainengine.chain.handlers import HandlerRegistry
from chainengine.chain.manager import StartResult
from chainengine.core.calendar import GameCalendar
from chainengine.core.collaborators import FriendshipTable, MemoryInventory, RecordingEventPublisher
from chainengine.core.events import GameEvent
from chainengine.core.persistence import METADATA_KEY, MemoryStorage, SaveError

from chain_helpers import HARVEST_GIFT, LINEAR, build_manager, record_events


def run(coro):
    return asyncio.run(coro)


class BrokenCalendar:
    def get_current_day(self):
        raise RuntimeError("calendar not ready")


class ReadOnlyStorage(MemoryStorage):
    def set_item(self, key, value):
        raise SaveError("disk full")


GATED = {
    "id": "gated",
    "title": "Gated Choices",
    "type": "discovery",
    "trigger": {"type": "manual"},
    "stages": [
        {
            "id": "pick",
            "text": "Pick a door.",
            "choices": [
                {"text": "red door", "next": "red"},
                {"text": "locked door", "next": "locked", "requires": {"item": "key"}},
                {"text": "blue door", "next": "blue"},
            ],
        },
        {"id": "red", "text": "Red room.", "end": True},
        {"id": "locked", "text": "Locked room.", "end": True},
        {"id": "blue", "text": "Blue room.", "end": True},
    ],
}

WAITING_CHOICE = {
    "id": "waiting_choice",
    "title": "Choice With Timer",
    "type": "discovery",
    "trigger": {"type": "manual"},
    "stages": [
        {
            "id": "decide",
            "text": "Decide.",
            "wait_days": 0,
            "next": "after",
            "choices": [{"text": "go on", "next": "after"}],
        },
        {"id": "after", "text": "After.", "end": True},
    ],
}


def tile_chain(chain_id, x, y, radius=None):
    trigger = {"type": "tile", "map_id": "village", "tile_x": x, "tile_y": y}
    if radius is not None:
        trigger["radius"] = radius
    return {
        "id": chain_id,
        "title": chain_id.title(),
        "type": "mystery",
        "trigger": trigger,
        "stages": [
            {
                "id": "find",
                "text": "Walk to the pier.",
                "objective": {"type": "go_to", "map_id": "coast", "tile_x": 10, "tile_y": 4},
                "next": "done",
            },
            {"id": "done", "text": "Found it.", "end": True},
        ],
    }


# ---------------- harvest_gift scenario ----------------

def test_harvest_gift_without_basket():
    """Without a basket only 'no' is offered and choosing it grants nothing."""
    manager = build_manager(HARVEST_GIFT)

    assert run(manager.start_chain("harvest_gift")) is StartResult.STARTED

    choices = manager.get_available_choices("harvest_gift")
    assert [(c.text, c.next) for c in choices] == [("no", "end")]

    assert run(manager.make_choice("harvest_gift", 0)) == True
    progress = manager.get_progress("harvest_gift")
    assert progress.current_stage_id == "end"
    assert progress.completed == True
    assert progress.choices_made == {"ask": "no"}
    assert manager.inventory.has_item("seed_pea") == False


def test_harvest_gift_with_basket():
    """With a basket the first of two choices leads to the reward."""
    inventory = MemoryInventory()
    inventory.add_item("basket")
    manager = build_manager(HARVEST_GIFT, inventory=inventory)

    run(manager.start_chain("harvest_gift"))
    choices = manager.get_available_choices("harvest_gift")
    assert [c.text for c in choices] == ["yes", "no"]

    assert run(manager.make_choice("harvest_gift", 0)) == True
    assert manager.get_progress("harvest_gift").current_stage_id == "thanks"
    assert manager.is_chain_completed("harvest_gift")
    assert inventory.count("seed_pea") == 3


# ---------------- start ----------------

def test_start_is_idempotent():
    calendar = GameCalendar()
    manager = build_manager(HARVEST_GIFT, calendar=calendar)

    assert run(manager.start_chain("harvest_gift"))
    before = manager.get_progress("harvest_gift")

    calendar.advance_days(3)
    result = run(manager.start_chain("harvest_gift"))

    assert result is StartResult.ALREADY_STARTED
    assert not result
    assert manager.get_progress("harvest_gift") == before


def test_start_unknown_chain():
    manager = build_manager(HARVEST_GIFT)
    result = run(manager.start_chain("nope"))
    assert result is StartResult.UNKNOWN_CHAIN
    assert not result
    assert manager.get_all_progress() == {}


def test_start_records_days_and_metadata():
    calendar = GameCalendar(day=5)
    manager = build_manager(HARVEST_GIFT, calendar=calendar)
    initial = {"counter": 1, "crops": []}

    run(manager.start_chain("harvest_gift", initial))
    initial["crops"].append("leek")

    progress = manager.get_progress("harvest_gift")
    assert progress.started_day == 5
    assert progress.stage_entered_day == 5
    assert progress.metadata == {"counter": 1, "crops": []}


def test_start_notifications():
    manager = build_manager(HARVEST_GIFT)
    received = record_events(
        manager,
        GameEvent.CHAIN_UPDATED, GameEvent.QUEST_STARTED,
        GameEvent.QUEST_STAGE_CHANGED, GameEvent.CHAIN_CHOICE_REQUIRED,
    )

    run(manager.start_chain("harvest_gift"))

    assert [event for event, _ in received] == [
        GameEvent.CHAIN_UPDATED,
        GameEvent.QUEST_STARTED,
        GameEvent.QUEST_STAGE_CHANGED,
        GameEvent.CHAIN_CHOICE_REQUIRED,
    ]
    assert received[0][1] == {"chain_id": "harvest_gift", "stage_id": "ask", "action": "started"}
    assert received[2][1] == {"quest_id": "harvest_gift", "stage": 1, "previous_stage": 0}
    choice_payload = received[3][1]
    assert choice_payload["stage_text"] == "Did you bring a basket?"
    assert choice_payload["choices"] == [{"text": "no", "next": "end"}]


def test_no_choice_prompt_when_every_choice_is_gated():
    document = copy.deepcopy(HARVEST_GIFT)
    document["stages"][0]["choices"][1]["requires"] = {"item": "lantern"}
    manager = build_manager(document)
    received = record_events(manager, GameEvent.CHAIN_CHOICE_REQUIRED)

    run(manager.start_chain("harvest_gift"))

    assert received == []
    assert manager.get_available_choices("harvest_gift") == []


def test_single_stage_chain_completes_on_start():
    document = {
        "id": "note",
        "title": "A Note",
        "type": "discovery",
        "trigger": {"type": "manual"},
        "stages": [{"id": "read", "text": "You read the note.", "end": True}],
    }
    manager = build_manager(document)

    assert run(manager.start_chain("note"))
    assert manager.is_chain_completed("note")


# ---------------- choices ----------------

def test_choice_index_uses_filtered_list():
    manager = build_manager(GATED)
    run(manager.start_chain("gated"))

    assert [c.text for c in manager.get_available_choices("gated")] == ["red door", "blue door"]
    assert run(manager.make_choice("gated", 1)) == True
    assert manager.get_progress("gated").current_stage_id == "blue"


def test_choice_index_out_of_range():
    manager = build_manager(GATED)
    run(manager.start_chain("gated"))

    assert run(manager.make_choice("gated", 2)) == False
    assert run(manager.make_choice("gated", -1)) == False
    assert manager.get_progress("gated").current_stage_id == "pick"


def test_make_choice_requires_started_chain():
    manager = build_manager(GATED)
    assert run(manager.make_choice("gated", 0)) == False
    assert run(manager.make_choice("missing", 0)) == False


def test_make_choice_on_linear_stage():
    manager = build_manager(LINEAR)
    run(manager.start_chain("linear"))
    assert run(manager.make_choice("linear", 0)) == False


def test_friendship_requirement():
    document = copy.deepcopy(GATED)
    document["stages"][0]["choices"][1]["requires"] = {"friendship_tier": {"npc_id": "mae", "tier": "good_friend"}}

    friendship = FriendshipTable({"mae": "acquaintance"})
    manager = build_manager(document, friendship=friendship)
    run(manager.start_chain("gated"))
    assert len(manager.get_available_choices("gated")) == 2

    friendship.set_tier("mae", "best_friend")
    assert len(manager.get_available_choices("gated")) == 3

    # no friendship collaborator configured: clause counts as met
    manager = build_manager(document)
    run(manager.start_chain("gated"))
    assert len(manager.get_available_choices("gated")) == 3


def test_chain_requirements():
    document = copy.deepcopy(GATED)
    document["stages"][0]["choices"][1]["requires"] = {"chain_completed": "harvest_gift"}
    manager = build_manager(HARVEST_GIFT, document)

    run(manager.start_chain("gated"))
    assert len(manager.get_available_choices("gated")) == 2

    run(manager.start_chain("harvest_gift"))
    run(manager.make_choice("harvest_gift", 0))
    assert len(manager.get_available_choices("gated")) == 3


# ---------------- advancing ----------------

def test_advance_notification_order():
    manager = build_manager(HARVEST_GIFT)
    run(manager.start_chain("harvest_gift"))
    received = record_events(
        manager, GameEvent.CHAIN_UPDATED, GameEvent.QUEST_COMPLETED, GameEvent.QUEST_STAGE_CHANGED,
    )

    run(manager.make_choice("harvest_gift", 0))

    assert received == [
        (GameEvent.CHAIN_UPDATED, {"chain_id": "harvest_gift", "stage_id": "end", "action": "completed"}),
        (GameEvent.QUEST_COMPLETED, {"quest_id": "harvest_gift"}),
        (GameEvent.QUEST_STAGE_CHANGED, {"quest_id": "harvest_gift", "stage": 3, "previous_stage": 1}),
    ]


def test_advance_effect_order():
    """Event is published and rewards granted before the stage handler runs."""
    publisher = RecordingEventPublisher()
    inventory = MemoryInventory()
    handlers = HandlerRegistry()
    seen = {}

    def on_two(chain_id, stage_id, context):
        seen["published"] = len(publisher.events)
        seen["carrots"] = inventory.count("seed_carrot")
        seen["stage"] = context.chain_manager.get_progress(chain_id).current_stage_id

    handlers.register("linear", "two", on_two)
    manager = build_manager(LINEAR, publisher=publisher, inventory=inventory, handlers=handlers)
    run(manager.start_chain("linear"))

    assert run(manager.advance_to_stage("linear", "two")) == True
    assert seen == {"published": 1, "carrots": 2, "stage": "two"}
    assert publisher.events[0]["type"] == "seasonal"
    assert publisher.events[0]["title"] == "Linear event"


def test_advance_to_unknown_stage():
    manager = build_manager(LINEAR)
    run(manager.start_chain("linear"))
    assert run(manager.advance_to_stage("linear", "nowhere")) == False
    assert manager.get_progress("linear").current_stage_id == "one"


def test_advance_not_started():
    manager = build_manager(LINEAR)
    assert run(manager.advance_to_stage("linear", "two")) == False
    assert not manager.is_chain_started("linear")


def test_completed_chain_is_frozen():
    manager = build_manager(HARVEST_GIFT)
    run(manager.start_chain("harvest_gift"))
    run(manager.make_choice("harvest_gift", 0))
    completed = manager.get_progress("harvest_gift")

    assert run(manager.advance_to_stage("harvest_gift", "ask")) == False
    assert run(manager.make_choice("harvest_gift", 0)) == False
    assert run(manager.start_chain("harvest_gift")) is StartResult.ALREADY_STARTED
    assert run(manager.check_auto_advance()) == []
    assert manager.get_progress("harvest_gift") == completed


def test_publish_failure_does_not_block_progress():
    storage = MemoryStorage()
    manager = build_manager(LINEAR, storage=storage, publisher=RecordingEventPublisher(fail=True))
    run(manager.start_chain("linear"))

    assert run(manager.advance_to_stage("linear", "two")) == True
    assert manager.get_progress("linear").current_stage_id == "two"
    assert manager.inventory.count("seed_carrot") == 2
    assert json.loads(storage.get_item("event_chains"))["linear"]["current_stage_id"] == "two"


def test_handler_failure_does_not_block_progress():
    handlers = HandlerRegistry()

    def explode(chain_id, stage_id, context):
        raise RuntimeError("handler bug")

    handlers.register("linear", "three", explode)
    manager = build_manager(LINEAR, handlers=handlers)
    run(manager.start_chain("linear"))

    assert run(manager.advance_to_stage("linear", "three")) == True
    assert manager.is_chain_completed("linear")


def test_handler_may_advance_chain():
    handlers = HandlerRegistry()

    async def skip_ahead(chain_id, stage_id, context):
        await context.chain_manager.advance_to_stage(chain_id, "three")

    handlers.register("linear", "two", skip_ahead)
    manager = build_manager(LINEAR, handlers=handlers)
    run(manager.start_chain("linear"))
    received = record_events(manager, GameEvent.CHAIN_UPDATED)
    stage_changes = record_events(manager, GameEvent.QUEST_STAGE_CHANGED)

    assert run(manager.advance_to_stage("linear", "two")) == True
    progress = manager.get_progress("linear")
    assert progress.current_stage_id == "three"
    assert progress.completed == True
    assert [payload["action"] for _, payload in received] == ["completed"]
    assert [payload for _, payload in stage_changes] == [
        {"quest_id": "linear", "stage": 3, "previous_stage": 2},
        {"quest_id": "linear", "stage": 2, "previous_stage": 1},
    ]


def test_first_stage_handler_may_advance_chain():
    handlers = HandlerRegistry()

    async def skip_ahead(chain_id, stage_id, context):
        await context.chain_manager.advance_to_stage(chain_id, "two")

    handlers.register("linear", "one", skip_ahead)
    manager = build_manager(LINEAR, handlers=handlers)
    stage_changes = record_events(manager, GameEvent.QUEST_STAGE_CHANGED)
    prompts = record_events(manager, GameEvent.CHAIN_CHOICE_REQUIRED)

    assert run(manager.start_chain("linear"))
    assert manager.get_progress("linear").current_stage_id == "two"
    assert [payload for _, payload in stage_changes] == [
        {"quest_id": "linear", "stage": 2, "previous_stage": 1},
        {"quest_id": "linear", "stage": 1, "previous_stage": 0},
    ]
    assert prompts == []


# ---------------- timed stages ----------------

def test_auto_advance_after_wait():
    calendar = GameCalendar()
    manager = build_manager(LINEAR, calendar=calendar)
    run(manager.start_chain("linear"))

    assert run(manager.check_auto_advance()) == []

    calendar.advance_days(1)
    assert run(manager.check_auto_advance()) == []

    calendar.advance_days(1)
    assert run(manager.check_auto_advance()) == ["linear"]
    progress = manager.get_progress("linear")
    assert progress.current_stage_id == "two"
    assert progress.stage_entered_day == 3

    # stage two has no wait: it moves on at the next check
    assert run(manager.check_auto_advance()) == ["linear"]
    assert manager.is_chain_completed("linear")


def test_no_auto_advance_across_choices():
    calendar = GameCalendar()
    manager = build_manager(WAITING_CHOICE, calendar=calendar)
    run(manager.start_chain("waiting_choice"))

    calendar.advance_days(30)
    assert run(manager.check_auto_advance()) == []
    assert manager.get_progress("waiting_choice").current_stage_id == "decide"


def test_calendar_failure_falls_back_to_day_one():
    manager = build_manager(LINEAR, calendar=BrokenCalendar())
    assert run(manager.start_chain("linear"))
    progress = manager.get_progress("linear")
    assert progress.started_day == 1
    assert progress.stage_entered_day == 1


# ---------------- spatial triggers ----------------

def test_tile_trigger_first_match_wins():
    manager = build_manager(tile_chain("first", 5, 5), tile_chain("second", 5, 6))

    assert run(manager.check_tile_triggers("village", 5, 5.5)) == "first"
    assert manager.is_chain_started("first")
    assert not manager.is_chain_started("second")

    assert run(manager.check_tile_triggers("village", 5, 5.5)) == "second"
    assert run(manager.check_tile_triggers("village", 5, 5.5)) is None


def test_tile_trigger_radius_and_map():
    manager = build_manager(tile_chain("far", 0, 0, radius=3))

    assert run(manager.check_tile_triggers("coast", 0, 0)) is None
    assert run(manager.check_tile_triggers("village", 3, 1)) is None
    assert run(manager.check_tile_triggers("village", 3, 0)) == "far"


def test_objective_reached_advances():
    manager = build_manager(tile_chain("pier", 0, 0))
    run(manager.start_chain("pier"))
    received = record_events(manager, GameEvent.CHAIN_OBJECTIVE_REACHED)

    assert run(manager.check_objectives("coast", 20, 20)) is None
    assert run(manager.check_objectives("village", 10, 4)) is None

    assert run(manager.check_objectives("coast", 11, 4)) == "pier"
    assert received == [(GameEvent.CHAIN_OBJECTIVE_REACHED, {"chain_id": "pier", "stage_id": "find"})]
    assert manager.is_chain_completed("pier")


def test_objective_first_match_wins():
    manager = build_manager(tile_chain("a", 0, 0), tile_chain("b", 0, 0))
    run(manager.start_chain("a"))
    run(manager.start_chain("b"))

    assert run(manager.check_objectives("coast", 10, 4)) == "a"
    assert manager.is_chain_completed("a")
    assert manager.is_chain_active("b")


# ---------------- reset and metadata ----------------

def test_reset_chain():
    manager = build_manager(HARVEST_GIFT)
    run(manager.start_chain("harvest_gift"))
    run(manager.make_choice("harvest_gift", 0))
    received = record_events(manager, GameEvent.CHAIN_UPDATED)

    assert manager.reset_chain("harvest_gift") == True
    assert received == [(GameEvent.CHAIN_UPDATED, {"chain_id": "harvest_gift", "stage_id": "", "action": "reset"})]
    assert not manager.is_chain_started("harvest_gift")
    assert manager.reset_chain("harvest_gift") == False

    assert run(manager.start_chain("harvest_gift")) is StartResult.STARTED


def test_metadata():
    storage = MemoryStorage()
    manager = build_manager(HARVEST_GIFT, storage=storage)
    received = record_events(manager, GameEvent.QUEST_DATA_CHANGED)

    assert manager.set_metadata("harvest_gift", "visits", 1) == False

    run(manager.start_chain("harvest_gift"))
    assert manager.set_metadata("harvest_gift", "crops", ["pea"]) == True
    assert received == [(GameEvent.QUEST_DATA_CHANGED, {"quest_id": "harvest_gift", "key": "crops", "value": ["pea"]})]

    crops = manager.get_metadata("harvest_gift", "crops")
    crops.append("leek")
    assert manager.get_metadata("harvest_gift", "crops") == ["pea"]
    assert manager.get_metadata("harvest_gift", "missing", 7) == 7

    saved = json.loads(storage.get_item("event_chains"))
    assert saved["harvest_gift"]["metadata"] == {"crops": ["pea"]}


def test_metadata_must_be_json_serializable(caplog):
    storage = MemoryStorage()
    manager = build_manager(LINEAR, HARVEST_GIFT, storage=storage)
    run(manager.start_chain("linear"))
    received = record_events(manager, GameEvent.QUEST_DATA_CHANGED)

    with caplog.at_level("WARNING"):
        assert manager.set_metadata("linear", "seen", {"a", "b"}) == False
    assert "not JSON serializable" in caplog.text
    assert manager.get_metadata("linear", "seen") is None
    assert received == []

    assert run(manager.start_chain("harvest_gift"))
    saved = json.loads(storage.get_item("event_chains"))
    assert sorted(saved) == [METADATA_KEY, "harvest_gift", "linear"]


def test_start_rejects_unserializable_metadata():
    storage = MemoryStorage()
    manager = build_manager(LINEAR, storage=storage)
    received = record_events(manager, GameEvent.QUEST_STARTED)

    result = run(manager.start_chain("linear", {"seen": {"a", "b"}}))
    assert result == StartResult.INVALID_METADATA
    assert not result
    assert manager.is_chain_started("linear") == False
    assert received == []
    assert storage.get_item("event_chains") is None

    assert run(manager.start_chain("linear", {"seen": ["a", "b"]}))
    assert manager.get_metadata("linear", "seen") == ["a", "b"]


def test_snapshots_are_detached():
    manager = build_manager(HARVEST_GIFT)
    run(manager.start_chain("harvest_gift"))

    snapshot = manager.get_progress("harvest_gift")
    snapshot.current_stage_id = "thanks"
    snapshot.metadata["hacked"] = True
    manager.get_all_progress()["harvest_gift"].completed = True

    progress = manager.get_progress("harvest_gift")
    assert progress.current_stage_id == "ask"
    assert progress.metadata == {}
    assert progress.completed == False


# ---------------- queries ----------------

def test_active_and_completed_lists():
    manager = build_manager(HARVEST_GIFT, LINEAR)
    run(manager.start_chain("harvest_gift"))
    run(manager.start_chain("linear"))
    run(manager.make_choice("harvest_gift", 0))

    assert [p.chain_id for p in manager.get_active_chains()] == ["linear"]
    assert [p.chain_id for p in manager.get_completed_chains()] == ["harvest_gift"]
    assert [d.id for d in manager.get_all_chains()] == ["harvest_gift", "linear"]
    assert manager.has_chain("linear")
    assert not manager.has_chain("nope")


def test_stage_number_and_rewards():
    document = copy.deepcopy(LINEAR)
    document["stages"][1]["stage_number"] = 10
    manager = build_manager(document)

    assert manager.get_stage_number("linear") == 0
    run(manager.start_chain("linear"))
    assert manager.get_stage_number("linear") == 1
    assert manager.get_stage_rewards("linear") == []

    run(manager.advance_to_stage("linear", "two"))
    assert manager.get_stage_number("linear") == 10
    assert [(r.item_id, r.quantity) for r in manager.get_stage_rewards("linear")] == [("seed_carrot", 2)]


def test_chain_dialogue():
    document = copy.deepcopy(HARVEST_GIFT)
    document["stages"][0]["dialogue"] = {"mae": {"text": "Got a basket?", "expression": "smile"}}
    manager = build_manager(document)

    assert manager.get_chain_dialogue("mae") == []
    run(manager.start_chain("harvest_gift"))
    lines = manager.get_chain_dialogue("mae")
    assert [(line.text, line.expression) for line in lines] == [("Got a basket?", "smile")]
    assert manager.get_chain_dialogue("althea") == []

    run(manager.make_choice("harvest_gift", 0))
    assert manager.get_chain_dialogue("mae") == []


# ---------------- persistence through the manager ----------------

def test_progress_survives_restart():
    storage = MemoryStorage()
    calendar = GameCalendar(day=4)
    manager = build_manager(HARVEST_GIFT, LINEAR, storage=storage, calendar=calendar)
    run(manager.start_chain("linear", {"visits": 2}))
    run(manager.start_chain("harvest_gift"))
    run(manager.make_choice("harvest_gift", 0))
    before = manager.get_all_progress()

    restored = build_manager(HARVEST_GIFT, LINEAR, storage=storage)
    assert restored.get_all_progress() == before


def test_restore_drops_removed_chains():
    storage = MemoryStorage()
    manager = build_manager(HARVEST_GIFT, LINEAR, storage=storage)
    run(manager.start_chain("linear"))
    run(manager.start_chain("harvest_gift"))

    restored = build_manager(HARVEST_GIFT, storage=storage)
    assert list(restored.get_all_progress()) == ["harvest_gift"]


def test_restore_drops_unknown_stage():
    storage = MemoryStorage()
    manager = build_manager(LINEAR, storage=storage)
    run(manager.start_chain("linear"))

    document = copy.deepcopy(LINEAR)
    document["stages"][0]["id"] = "renamed"
    restored = build_manager(document, storage=storage)
    assert restored.get_all_progress() == {}


def test_restore_from_newer_save_leaves_progress_empty():
    record = {
        "linear": {"chain_id": "linear", "current_stage_id": "one", "started_day": 1, "stage_entered_day": 1},
        METADATA_KEY: {"version": 99},
    }
    storage = MemoryStorage({"event_chains": json.dumps(record)})
    manager = build_manager(LINEAR, storage=storage)
    assert manager.get_all_progress() == {}


def test_restore_from_corrupt_save():
    storage = MemoryStorage({"event_chains": "{not json"})
    manager = build_manager(LINEAR, storage=storage)
    assert manager.get_all_progress() == {}
    assert run(manager.start_chain("linear"))


def test_restore_from_save_with_bad_version():
    for version in ("1", None):
        record = json.dumps({METADATA_KEY: {"version": version}, "linear": {"chain_id": "linear"}})
        manager = build_manager(LINEAR, storage=MemoryStorage({"event_chains": record}))
        assert manager.get_all_progress() == {}
        assert run(manager.start_chain("linear"))


def test_save_failure_keeps_in_memory_progress():
    manager = build_manager(LINEAR, storage=ReadOnlyStorage())
    assert run(manager.start_chain("linear"))
    assert run(manager.advance_to_stage("linear", "two"))
    assert manager.get_progress("linear").current_stage_id == "two"


def test_initialise_is_idempotent():
    storage = MemoryStorage()
    manager = build_manager(LINEAR, storage=storage)
    run(manager.start_chain("linear"))

    storage.set_item("event_chains", "{}")
    manager.initialise()
    assert manager.is_chain_started("linear")
