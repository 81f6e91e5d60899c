"""Chain command handlers for integration with a game's command system.

Each handler returns the usual command result dictionary:
``{"lines": [...], "hints": [...], "events_triggered": [...]}``.
"""

from typing import Any, Dict, List, Optional
from .manager import ChainManager


def _result(lines: List[str], hints: Optional[List[str]] = None,
            events: Optional[List[str]] = None) -> Dict[str, Any]:
    return {"lines": lines, "hints": hints or [], "events_triggered": events or []}


def chain_list_command(manager: ChainManager, show: str = "active") -> Dict[str, Any]:
    """Handle 'chains' command to list chains.

    Args:
        manager: ChainManager instance
        show: "active", "completed" or "all"

    Returns:
        Command result dictionary
    """
    lines = []

    if show == "all":
        lines.append("=== All Chains ===")
        for definition in manager.get_all_chains():
            if manager.is_chain_completed(definition.id):
                marker = "✓"
            elif manager.is_chain_active(definition.id):
                marker = "→"
            else:
                marker = " "
            lines.append(f"{marker} {definition.title} ({definition.id}) [{definition.type}]")
        return _result(lines)

    if show == "completed":
        progress_list = manager.get_completed_chains()
        lines.append("=== Completed Chains ===")
    else:
        progress_list = manager.get_active_chains()
        lines.append("=== Active Chains ===")

    if not progress_list:
        lines.append("No chains." if show == "completed" else "No active chains.")
        return _result(lines)

    for progress in progress_list:
        chain = manager.get_chain(progress.chain_id)
        if chain is None:
            continue
        stage_num = manager.get_stage_number(progress.chain_id)
        lines.append(f"  {chain.definition.title}")
        lines.append(f"   Stage {stage_num}/{len(chain.definition.stages)}: {progress.current_stage_id}")

    return _result(lines)


def chain_detail_command(manager: ChainManager, chain_id: str) -> Dict[str, Any]:
    """Handle 'chain <id>' command to show the current stage of a chain.

    Args:
        manager: ChainManager instance
        chain_id: ID of chain to show details for

    Returns:
        Command result dictionary
    """
    chain = manager.get_chain(chain_id)
    if not chain:
        return _result([f"Chain '{chain_id}' not found."])

    definition = chain.definition
    lines = [f"=== {definition.title} ==="]
    if definition.description:
        lines.append(definition.description)
    lines.append(f"Type: {definition.type}")

    progress = manager.get_progress(chain_id)
    if progress is None:
        lines.append("Status: not started")
        return _result(lines)

    lines.append("Status: completed" if progress.completed else "Status: active")

    stage = manager.get_current_stage(chain_id)
    hints = []
    if stage:
        lines.append("")
        lines.append(stage.text)
        if stage.objective and stage.objective.hint:
            hints.append(stage.objective.hint)

    if not progress.completed:
        choices = manager.get_available_choices(chain_id)
        if choices:
            lines.append("")
            lines.append("Choices:")
            for i, choice in enumerate(choices):
                lines.append(f"  {i + 1}. {choice.text}")

    if progress.choices_made:
        lines.append("")
        lines.append("Decisions:")
        for stage_id, text in progress.choices_made.items():
            lines.append(f"  {stage_id}: {text}")

    return _result(lines, hints)


async def chain_choose_command(manager: ChainManager, chain_id: str, choice_number: int) -> Dict[str, Any]:
    """Handle 'choose <id> <n>' command. The number is 1-based as displayed.

    Args:
        manager: ChainManager instance
        chain_id: ID of chain
        choice_number: Number shown next to the choice in 'chain <id>'

    Returns:
        Command result dictionary
    """
    choices = manager.get_available_choices(chain_id)
    if not choices:
        return _result([f"No choice to make in '{chain_id}'."])

    if not 1 <= choice_number <= len(choices):
        return _result([f"Choose a number between 1 and {len(choices)}."])

    choice = choices[choice_number - 1]
    if not await manager.make_choice(chain_id, choice_number - 1):
        return _result([f"Could not choose '{choice.text}'."])

    lines = [f"You chose: {choice.text}"]
    stage = manager.get_current_stage(chain_id)
    if stage:
        lines.append(stage.text)
    events = ["chain_completed"] if manager.is_chain_completed(chain_id) else ["chain_advanced"]
    return _result(lines, events=events)


def chain_reset_command(manager: ChainManager, chain_id: str) -> Dict[str, Any]:
    """Handle 'chainreset <id>' developer command."""
    if not manager.has_chain(chain_id):
        return _result([f"Chain '{chain_id}' not found."])
    if manager.reset_chain(chain_id):
        return _result([f"Reset chain: {chain_id}"], events=["chain_reset"])
    return _result([f"Chain '{chain_id}' was not started."])


CHAIN_COMMANDS = {
    "chains": {
        "usage": "chains [active|completed|all]",
        "desc": "List event chains. Shows active chains by default.",
        "examples": ["chains", "chains all"]
    },
    "chain": {
        "usage": "chain <id>",
        "desc": "Show the current stage and available choices of a chain.",
        "examples": ["chain harvest_gift"]
    },
    "choose": {
        "usage": "choose <id> <n>",
        "desc": "Pick choice number n at the current stage of a chain.",
        "examples": ["choose harvest_gift 1"]
    },
    "chainreset": {
        "usage": "chainreset <id>",
        "desc": "Forget all progress of a chain (developer tool).",
        "examples": ["chainreset harvest_gift"]
    }
}
