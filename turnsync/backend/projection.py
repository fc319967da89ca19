"""Player-screen projection of an encounter."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from .models import Combatant, EncounterState
from .resolver import DEFAULT_OPTIONS, ResolverOptions, active_display_name, resolve
from .sequencer import RenderEntry, RoundBoundaryMarker, boundary_position, sequence


@dataclass(frozen=True)
class Projection:
    round: int
    visible_order: tuple[Combatant, ...]
    display_index: int
    suspended: bool = False
    settings: Mapping[str, Any] = field(default_factory=dict)
    encounter_id: str | None = None
    encounter_name: str = ""

    @property
    def active(self) -> Combatant | None:
        if self.suspended or not self.visible_order:
            return None
        return self.visible_order[self.display_index]

    @property
    def active_key(self) -> tuple[str, str] | None:
        active = self.active
        if active is None:
            return None
        return (active.id, active.name)

    @property
    def initiative_count(self) -> int:
        return sum(1 for combatant in self.visible_order if combatant.initiative is not None)

    @property
    def initiative_complete(self) -> bool:
        return bool(self.visible_order) and self.initiative_count == len(self.visible_order)


def is_suspended(state: EncounterState) -> bool:
    return state.is_completed or bool(state.player_screen_settings.get("blankScreen"))


def project(state: EncounterState, options: ResolverOptions = DEFAULT_OPTIONS) -> Projection:
    resolved = resolve(state, options)
    return Projection(
        round=state.round,
        visible_order=resolved.visible_order,
        display_index=resolved.display_index,
        suspended=is_suspended(state),
        settings=dict(state.player_screen_settings),
        encounter_id=state.encounter_id,
        encounter_name=state.name,
    )


def player_view_payload(
    projection: Projection,
    display_index: int | None = None,
    round_number: int | None = None,
) -> dict[str, Any]:
    """Serialise a projection for the player screen.

    ``display_index`` and ``round_number`` override the projection's values,
    letting a viewer publish its committed position while a transition runs.
    """
    index = projection.display_index if display_index is None else display_index
    if projection.visible_order:
        index %= len(projection.visible_order)
    else:
        index = 0
    current_round = projection.round if round_number is None else round_number
    if projection.suspended:
        return {
            "encounterId": projection.encounter_id,
            "name": projection.encounter_name,
            "suspended": True,
            "round": current_round,
            "displayIndex": 0,
            "activeName": "",
            "settings": dict(projection.settings),
            "boundaryRow": -1,
            "entries": [],
        }

    show_bloodied = bool(projection.settings.get("showBloodiedInPlayerView"))
    entries: list[dict[str, Any]] = []
    items = sequence(projection.visible_order, index, current_round)
    for item in items:
        if isinstance(item, RoundBoundaryMarker):
            entries.append({"type": "roundBoundary", "round": item.round_number})
        elif isinstance(item, RenderEntry):
            entries.append(_combatant_payload(item, show_bloodied))

    return {
        "encounterId": projection.encounter_id,
        "name": projection.encounter_name,
        "suspended": False,
        "round": current_round,
        "displayIndex": index,
        "activeName": active_display_name(projection.visible_order, index),
        "settings": dict(projection.settings),
        "boundaryRow": boundary_position(items),
        "entries": entries,
    }


def _combatant_payload(item: RenderEntry, show_bloodied: bool) -> dict[str, Any]:
    combatant = item.entry
    return {
        "type": "combatant",
        "id": combatant.id,
        "name": combatant.name,
        "originalIndex": item.original_index,
        "renderIndex": item.render_index,
        "isCurrent": item.render_index == 0,
        "isNext": item.render_index == 1,
        "sidekickOf": combatant.sidekick_of,
        "concentration": combatant.concentration,
        "conditions": sorted(combatant.conditions),
        "bloodied": combatant.is_bloodied if show_bloodied else False,
        "tokenUrl": combatant.token_url or combatant.image_url,
    }
