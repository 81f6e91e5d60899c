"""Developer console for playing through event chains.

Usage (example):
    python run.py
Then type commands:
    chains all
    start harvest_gift
    chain harvest_gift
    choose harvest_gift 1
"""
from __future__ import annotations
import asyncio
import difflib
import logging
import sys

from chainengine.chain.commands import (
    CHAIN_COMMANDS, chain_choose_command, chain_detail_command, chain_list_command,
    chain_reset_command,
)
from chainengine.core.events import GameEvent
from config import get_log_level
from game.bootstrap import build_chain_manager

PROMPT = "> "

COMMAND_HELP = {
    **CHAIN_COMMANDS,
    'start': {'usage': 'start <id>', 'desc': 'Start a chain by hand (manual trigger).'},
    'day': {'usage': 'day [n]', 'desc': 'Advance the calendar n days (default 1) and run timed stages.'},
    'move': {'usage': 'move <map> <x> <y>', 'desc': 'Put the player on a tile; checks tile triggers and objectives.'},
    'give': {'usage': 'give <item> [quantity]', 'desc': 'Add an item to the inventory.'},
    'inventory': {'usage': 'inventory | inv', 'desc': 'Show inventory contents.'},
    'help': {'usage': 'help [command]', 'desc': 'List every command, or show usage for one.'},
    'quit': {'usage': 'quit | exit', 'desc': 'Leave the console.'},
}


def help_lines():
    lines = ["Available commands:"]
    max_usage = max(len(info['usage']) for info in COMMAND_HELP.values())
    for info in COMMAND_HELP.values():
        lines.append(f" {info['usage'].ljust(max_usage)}  - {info['desc']}")
    return lines


def print_result(result):
    for line in result["lines"]:
        print(line)
    for hint in result["hints"]:
        print(f"(hint) {hint}")


def _announce(event):
    def listener(payload):
        print(f"[{event.value}] {payload}")
    return listener


async def game_loop():
    manager = build_chain_manager()
    for event in (GameEvent.CHAIN_UPDATED, GameEvent.CHAIN_CHOICE_REQUIRED, GameEvent.CHAIN_OBJECTIVE_REACHED):
        manager.events.on(event, _announce(event))

    print("-- Event chain console. Type 'help' for the command list. --")
    while True:
        try:
            cmd = (await asyncio.to_thread(input, PROMPT)).strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break

        if not cmd:
            continue
        if cmd in {"quit", "exit"}:
            break

        if cmd.startswith("help"):
            parts = cmd.split(maxsplit=1)
            if len(parts) == 1:
                for line in help_lines():
                    print(line)
            else:
                topic = parts[1].strip()
                info = COMMAND_HELP.get(topic)
                if info:
                    print(f"{info['usage']}: {info['desc']}")
                else:
                    close = difflib.get_close_matches(topic, COMMAND_HELP.keys(), n=3)
                    print(f"Unknown command '{topic}'." + (f" Did you mean: {', '.join(close)}?" if close else ""))
            continue

        parts = cmd.split()
        name = parts[0]

        if name == "chains":
            print_result(chain_list_command(manager, parts[1] if len(parts) > 1 else "active"))
        elif name == "chain":
            if len(parts) < 2:
                print("Usage: chain <id>")
                continue
            print_result(chain_detail_command(manager, parts[1]))
        elif name == "start":
            if len(parts) < 2:
                print("Usage: start <id>")
                continue
            result = await manager.start_chain(parts[1])
            print(f"start {parts[1]}: {result.value}")
        elif name == "choose":
            if len(parts) < 3 or not parts[2].isdigit():
                print("Usage: choose <id> <n>")
                continue
            print_result(await chain_choose_command(manager, parts[1], int(parts[2])))
        elif name == "chainreset":
            if len(parts) < 2:
                print("Usage: chainreset <id>")
                continue
            print_result(chain_reset_command(manager, parts[1]))
        elif name == "day":
            days = int(parts[1]) if len(parts) > 1 and parts[1].isdigit() else 1
            manager.calendar.advance_days(days)
            print(f"Today: {manager.calendar!r}")
            advanced = await manager.check_auto_advance()
            if advanced:
                print(f"Advanced: {', '.join(advanced)}")
        elif name == "move":
            if len(parts) < 4:
                print("Usage: move <map> <x> <y>")
                continue
            try:
                x, y = float(parts[2]), float(parts[3])
            except ValueError:
                print("Coordinates must be numbers.")
                continue
            started = await manager.check_tile_triggers(parts[1], x, y)
            if started:
                print(f"Started: {started}")
            reached = await manager.check_objectives(parts[1], x, y)
            if reached:
                print(f"Objective reached: {reached}")
        elif name == "give":
            if len(parts) < 2:
                print("Usage: give <item> [quantity]")
                continue
            quantity = int(parts[2]) if len(parts) > 2 and parts[2].isdigit() else 1
            manager.inventory.add_item(parts[1], quantity)
            manager.inventory.save()
            print(f"Added {quantity}x {parts[1]}")
        elif name in {"inventory", "inv"}:
            items = getattr(manager.inventory, "items", {})
            if not items:
                print("Inventory is empty.")
            for item_id, count in sorted(items.items()):
                print(f"  {item_id} x{count}")
        else:
            close = difflib.get_close_matches(name, COMMAND_HELP.keys(), n=3)
            print(f"Unknown command '{name}'." + (f" Did you mean: {', '.join(close)}?" if close else ""))


def main():
    logging.basicConfig(level=get_log_level(), format="%(levelname)s %(name)s: %(message)s")
    try:
        sys.stdout.reconfigure(encoding='utf-8')
    except AttributeError:
        pass
    asyncio.run(game_loop())


if __name__ == "__main__":
    main()
