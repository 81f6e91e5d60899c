"""Spatial and temporal trigger predicates.

These decide, without side effects, whether a chain should be auto-started
(tile proximity) or auto-advanced (elapsed wait, objective reached). The
ChainManager calls them and performs the resulting transitions.
"""

import math
from typing import Optional

from config import DEFAULT_PROXIMITY_RADIUS
from .model import ChainProgress, Objective, Stage, Trigger


def tile_distance(ax: float, ay: float, bx: float, by: float) -> float:
    """Euclidean distance in tile-coordinate space."""
    return math.hypot(ax - bx, ay - by)


def within_radius(ax: float, ay: float, bx: float, by: float, radius: Optional[float]) -> bool:
    if radius is None:
        radius = DEFAULT_PROXIMITY_RADIUS
    return tile_distance(ax, ay, bx, by) <= radius


def tile_trigger_fires(trigger: Trigger, map_id: str, x: float, y: float) -> bool:
    """Check if a tile trigger fires for a player standing at (x, y) on map_id."""
    if trigger.type != "tile" or trigger.map_id != map_id:
        return False
    return within_radius(x, y, trigger.tile_x or 0, trigger.tile_y or 0, trigger.radius)


def objective_reached(objective: Optional[Objective], map_id: str, x: float, y: float) -> bool:
    """Check if a go_to objective is satisfied by the player's position."""
    if objective is None or objective.type != "go_to":
        return False
    if objective.map_id != map_id:
        return False
    return within_radius(x, y, objective.tile_x, objective.tile_y, objective.radius)


def days_elapsed(progress: ChainProgress, current_day: int) -> int:
    return current_day - progress.stage_entered_day


def auto_advance_due(stage: Stage, progress: ChainProgress, current_day: int) -> bool:
    """Check if a linear stage has waited long enough to move on.

    Stages with choices never auto-advance: they wait for the player.
    Stages without a ``next`` have nowhere to go.
    """
    if progress.completed or stage.has_choices or not stage.next:
        return False
    wait_days = stage.wait_days or 0
    return days_elapsed(progress, current_day) >= wait_days
