"""Resolve the controller's turn pointer into what player displays should show."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .models import Combatant, EncounterState, FullOrderEntry, LairActionMarker


@dataclass(frozen=True)
class ResolverOptions:
    sidekick_redirection: bool = True
    lair_actions: bool = True


DEFAULT_OPTIONS = ResolverOptions()


@dataclass(frozen=True)
class ResolvedOrder:
    visible_order: tuple[Combatant, ...]
    display_index: int
    turn_index: int
    active_entry: FullOrderEntry | None


def clamp_turn_index(turn_index: int, length: int) -> int:
    """Return turn_index when it addresses an entry, otherwise 0."""
    if length <= 0 or turn_index < 0 or turn_index >= length:
        return 0
    return turn_index


def build_full_order(
    state: EncounterState, options: ResolverOptions = DEFAULT_OPTIONS
) -> tuple[FullOrderEntry | None, ...]:
    """Map initiativeOrder onto entries, one slot per position.

    Stale combatant ids and unrecognised items become ``None`` so that slot
    positions stay aligned with ``state.turn_index``.
    """
    slots: list[FullOrderEntry | None] = []
    for ref in state.initiative_order:
        if isinstance(ref, LairActionMarker):
            slots.append(ref if options.lair_actions else None)
        elif isinstance(ref, str):
            slots.append(state.combatants.get(ref))
        else:
            slots.append(None)
    return tuple(slots)


def is_visible(entry: FullOrderEntry | None) -> bool:
    return isinstance(entry, Combatant) and entry.visible_to_players is not False


def resolve(state: EncounterState, options: ResolverOptions = DEFAULT_OPTIONS) -> ResolvedOrder:
    full_order = build_full_order(state, options)
    visible_order = tuple(entry for entry in full_order if is_visible(entry))
    positions = {combatant.id: index for index, combatant in enumerate(visible_order)}

    turn_index = clamp_turn_index(state.turn_index, len(full_order))
    active_entry = full_order[turn_index] if full_order else None

    if not visible_order:
        return ResolvedOrder(visible_order=(), display_index=0, turn_index=turn_index, active_entry=active_entry)

    anchor = _nearest_visible(full_order, turn_index)
    display_index = positions.get(anchor.id, 0) if anchor is not None else 0

    if options.sidekick_redirection:
        display_index = _redirect_sidekick(visible_order, positions, display_index)

    return ResolvedOrder(
        visible_order=visible_order,
        display_index=display_index,
        turn_index=turn_index,
        active_entry=active_entry,
    )


def _nearest_visible(full_order: Sequence[FullOrderEntry | None], turn_index: int) -> Combatant | None:
    current = full_order[turn_index]
    if is_visible(current):
        return current
    # Hidden entries keep the previous visible combatant on screen.
    for index in range(turn_index - 1, -1, -1):
        if is_visible(full_order[index]):
            return full_order[index]
    for index in range(len(full_order) - 1, turn_index, -1):
        if is_visible(full_order[index]):
            return full_order[index]
    return None


def _redirect_sidekick(
    visible_order: Sequence[Combatant], positions: dict[str, int], display_index: int
) -> int:
    # One hop only; chains and self references stop here.
    owner_id = visible_order[display_index].sidekick_of
    if owner_id is None:
        return display_index
    return positions.get(owner_id, display_index)


def sidekicks_of(visible_order: Sequence[Combatant], owner_id: str) -> list[Combatant]:
    return [combatant for combatant in visible_order if combatant.sidekick_of == owner_id and combatant.id != owner_id]


def active_display_name(visible_order: Sequence[Combatant], display_index: int) -> str:
    """Header text for the current turn, e.g. ``"Aria & Wolf"`` when Aria has a sidekick."""
    if not visible_order or not 0 <= display_index < len(visible_order):
        return ""
    current = visible_order[display_index]
    names = [current.name] + [sidekick.name for sidekick in sidekicks_of(visible_order, current.id)]
    return " & ".join(names)
