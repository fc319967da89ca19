"""Reducer for controller actions on the authoritative encounter record."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .models import COMBAT_ACTIVE, COMBAT_COMPLETED


DEFAULT_LAIR_INITIATIVE = 20


@dataclass(frozen=True)
class ActionResult:
    state: dict[str, Any]
    engine_events: list[dict[str, Any]]


def apply_host_action(state: dict[str, Any], action: dict[str, Any]) -> ActionResult:
    """Apply a controller action and return the next state plus engine events."""
    action_type = str(action.get("type", "")).upper()
    if action_type == "NEXT_TURN":
        return _apply_next_turn(state=state, action=action)
    if action_type == "SET_TURN":
        return _apply_set_turn(state=state, action=action)
    if action_type == "ADD_COMBATANT":
        return _apply_add_combatant(state=state, action=action)
    if action_type == "UPDATE_COMBATANT":
        return _apply_update_combatant(state=state, action=action)
    if action_type == "REMOVE_COMBATANT":
        return _apply_remove_combatant(state=state, action=action)
    if action_type == "ADD_LAIR_ACTION":
        return _apply_add_lair_action(state=state, action=action)
    if action_type == "SORT_INITIATIVE":
        return _apply_sort_initiative(state=state, action=action)
    if action_type == "SET_COMBAT_STATUS":
        return _apply_set_combat_status(state=state, action=action)
    if action_type == "UPDATE_PLAYER_SCREEN_SETTINGS":
        return _apply_update_settings(state=state, action=action)
    return ActionResult(state=dict(state), engine_events=[])


def _entry_id(entry: Any) -> str | None:
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict):
        entry_id = entry.get("id")
        return str(entry_id) if entry_id is not None else None
    return None


def _apply_next_turn(state: dict[str, Any], action: dict[str, Any]) -> ActionResult:
    next_state = dict(state)
    order = list(next_state.get("initiativeOrder", []))
    if not order:
        return ActionResult(
            state=next_state,
            engine_events=[{"kind": "timing", "timing": "turn_end", "actorId": None, "action": action}],
        )

    turn_index = int(next_state.get("turnIndex", 0))
    if turn_index < 0 or turn_index >= len(order):
        turn_index = 0
    current_actor = _entry_id(order[turn_index])

    events: list[dict[str, Any]] = [{"kind": "timing", "timing": "turn_end", "actorId": current_actor, "action": action}]

    new_turn_index = turn_index + 1
    wrapped = new_turn_index >= len(order)
    if wrapped:
        new_turn_index = 0

    next_state["turnIndex"] = new_turn_index

    if wrapped:
        events.append({"kind": "timing", "timing": "round_end", "action": action})
        next_state["round"] = int(next_state.get("round", 1)) + 1
        events.append({"kind": "timing", "timing": "round_start", "action": action})

    new_actor = _entry_id(order[new_turn_index])
    events.append({"kind": "timing", "timing": "turn_start", "actorId": new_actor, "action": action})

    return ActionResult(state=next_state, engine_events=events)


def _apply_set_turn(state: dict[str, Any], action: dict[str, Any]) -> ActionResult:
    next_state = dict(state)
    order = next_state.get("initiativeOrder", [])
    try:
        requested = int(action.get("turnIndex", 0))
    except (TypeError, ValueError):
        return ActionResult(state=next_state, engine_events=[])
    if requested < 0 or requested >= len(order):
        requested = 0
    next_state["turnIndex"] = requested
    actor_id = _entry_id(order[requested]) if order else None
    return ActionResult(
        state=next_state,
        engine_events=[{"kind": "timing", "timing": "turn_start", "actorId": actor_id, "action": action}],
    )


def _apply_add_combatant(state: dict[str, Any], action: dict[str, Any]) -> ActionResult:
    next_state = dict(state)
    combatant = action.get("combatant")
    if not isinstance(combatant, dict) or not combatant.get("id"):
        return ActionResult(state=next_state, engine_events=[])

    combatant_id = str(combatant["id"])
    combatants = dict(next_state.get("combatants", {}))
    order = list(next_state.get("initiativeOrder", []))
    combatants[combatant_id] = dict(combatant)
    if combatant_id not in order:
        order.append(combatant_id)
    next_state["combatants"] = combatants
    next_state["initiativeOrder"] = order
    return ActionResult(
        state=next_state,
        engine_events=[{"kind": "combatant_added", "actorId": combatant_id, "action": action}],
    )


def _apply_update_combatant(state: dict[str, Any], action: dict[str, Any]) -> ActionResult:
    next_state = dict(state)
    combatant_id = action.get("combatantId")
    changes = action.get("changes")
    combatants = dict(next_state.get("combatants", {}))
    if not isinstance(changes, dict) or combatant_id not in combatants:
        return ActionResult(state=next_state, engine_events=[])

    updated = dict(combatants[combatant_id])
    updated.update(changes)
    updated["id"] = combatant_id
    combatants[combatant_id] = updated
    next_state["combatants"] = combatants
    return ActionResult(
        state=next_state,
        engine_events=[{"kind": "combatant_updated", "actorId": combatant_id, "fields": sorted(changes), "action": action}],
    )


def _apply_remove_combatant(state: dict[str, Any], action: dict[str, Any]) -> ActionResult:
    next_state = dict(state)
    combatant_id = action.get("combatantId")
    if not isinstance(combatant_id, str) or combatant_id == "":
        return ActionResult(state=next_state, engine_events=[])

    combatants = dict(next_state.get("combatants", {}))
    order = list(next_state.get("initiativeOrder", []))
    if combatant_id not in combatants and combatant_id not in order:
        return ActionResult(state=next_state, engine_events=[])

    combatants.pop(combatant_id, None)
    turn_index = int(next_state.get("turnIndex", 0))
    if combatant_id in order:
        removed_at = order.index(combatant_id)
        order.pop(removed_at)
        if removed_at < turn_index:
            turn_index -= 1
    if turn_index < 0 or turn_index >= len(order):
        turn_index = 0

    # Sidekicks of a removed owner act on their own again.
    for other_id, other in list(combatants.items()):
        if isinstance(other, dict) and other.get("sidekickOf") == combatant_id:
            released = dict(other)
            released["sidekickOf"] = None
            combatants[other_id] = released

    next_state["combatants"] = combatants
    next_state["initiativeOrder"] = order
    next_state["turnIndex"] = turn_index
    return ActionResult(
        state=next_state,
        engine_events=[{"kind": "combatant_removed", "actorId": combatant_id, "action": action}],
    )


def _apply_add_lair_action(state: dict[str, Any], action: dict[str, Any]) -> ActionResult:
    next_state = dict(state)
    order = list(next_state.get("initiativeOrder", []))
    initiative = action.get("initiative", DEFAULT_LAIR_INITIATIVE)
    marker_id = str(action.get("id") or f"lair-{len(order)}")
    marker = {"type": "lair", "id": marker_id, "initiative": initiative}
    order.append(marker)
    next_state["initiativeOrder"] = rank_initiative_order(order, next_state.get("combatants", {}))
    next_state["turnIndex"] = _follow_entry(next_state, order, int(state.get("turnIndex", 0)))
    return ActionResult(
        state=next_state,
        engine_events=[{"kind": "lair_action_added", "markerId": marker_id, "action": action}],
    )


def _apply_sort_initiative(state: dict[str, Any], action: dict[str, Any]) -> ActionResult:
    next_state = dict(state)
    order = list(next_state.get("initiativeOrder", []))
    next_state["initiativeOrder"] = rank_initiative_order(order, next_state.get("combatants", {}))
    next_state["turnIndex"] = _follow_entry(next_state, order, int(state.get("turnIndex", 0)))
    return ActionResult(
        state=next_state,
        engine_events=[{"kind": "initiative_sorted", "action": action}],
    )


def _follow_entry(next_state: dict[str, Any], previous_order: list[Any], turn_index: int) -> int:
    # Keep the pointer on the entry that was acting before the reorder.
    if not previous_order or turn_index < 0 or turn_index >= len(previous_order):
        return 0
    acting = previous_order[turn_index]
    new_order = next_state["initiativeOrder"]
    for index, entry in enumerate(new_order):
        if entry is acting:
            return index
    return 0


def rank_initiative_order(order: list[Any], combatants: dict[str, Any]) -> list[Any]:
    """Sort order entries by initiative, highest first.

    Ties go to the higher tie-breaker; lair markers lose ties to combatants.
    Entries without an initiative, including lair markers missing one,
    sort last. Equal keys keep their previous relative order.
    """

    def sort_key(entry: Any) -> tuple[bool, float, int, float]:
        if isinstance(entry, dict) and entry.get("type") == "lair":
            initiative = _numeric(entry.get("initiative"))
            return (initiative is not None, initiative or 0.0, 0, 0.0)
        record = combatants.get(entry) if isinstance(entry, str) else None
        if not isinstance(record, dict):
            return (False, 0.0, 0, 0.0)
        initiative = _numeric(record.get("initiative"))
        tie_breaker = _numeric(record.get("initiativeTieBreaker")) or 0.0
        return (initiative is not None, initiative or 0.0, 1, tie_breaker)

    return sorted(order, key=sort_key, reverse=True)


def _numeric(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _apply_set_combat_status(state: dict[str, Any], action: dict[str, Any]) -> ActionResult:
    next_state = dict(state)
    status = str(action.get("status", "")).lower()
    if status not in (COMBAT_ACTIVE, COMBAT_COMPLETED) or status == next_state.get("combatStatus"):
        return ActionResult(state=next_state, engine_events=[])
    next_state["combatStatus"] = status
    return ActionResult(
        state=next_state,
        engine_events=[{"kind": "combat_status_changed", "status": status, "action": action}],
    )


def _apply_update_settings(state: dict[str, Any], action: dict[str, Any]) -> ActionResult:
    next_state = dict(state)
    settings = action.get("settings")
    if not isinstance(settings, dict):
        return ActionResult(state=next_state, engine_events=[])
    merged = dict(next_state.get("playerScreenSettings") or {})
    merged.update(settings)
    next_state["playerScreenSettings"] = merged
    return ActionResult(
        state=next_state,
        engine_events=[{"kind": "player_screen_settings_updated", "keys": sorted(settings), "action": action}],
    )
