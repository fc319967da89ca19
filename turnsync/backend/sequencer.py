"""Rotate the visible order so the acting combatant renders first."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Union

from .models import Combatant


@dataclass(frozen=True)
class RenderEntry:
    entry: Combatant
    original_index: int
    render_index: int


@dataclass(frozen=True)
class RoundBoundaryMarker:
    """Synthetic row separating the end of one round from the start of the next."""

    after_render_index: int
    round_number: int | None = None


SequenceItem = Union[RenderEntry, RoundBoundaryMarker]


def sequence(
    visible_order: Sequence[Combatant],
    display_index: int,
    round_number: int | None = None,
) -> tuple[SequenceItem, ...]:
    """Return the render order starting at ``display_index``.

    Walks the visible order circularly and places one RoundBoundaryMarker
    right after the entry that is last in initiative order. ``round_number``
    is the current round; the marker carries the one that begins after it.
    """
    total = len(visible_order)
    if total == 0:
        return ()

    start = display_index % total
    next_round = round_number + 1 if round_number is not None else None
    items: list[SequenceItem] = []
    for step in range(total):
        idx = (start + step) % total
        items.append(RenderEntry(entry=visible_order[idx], original_index=idx, render_index=step))
        if idx == total - 1:
            items.append(RoundBoundaryMarker(after_render_index=step, round_number=next_round))
    return tuple(items)


def boundary_position(items: Sequence[SequenceItem]) -> int:
    """Row of the round marker in ``items``, or -1 for an empty sequence."""
    for position, item in enumerate(items):
        if isinstance(item, RoundBoundaryMarker):
            return position
    return -1


def render_entries(items: Sequence[SequenceItem]) -> list[RenderEntry]:
    return [item for item in items if isinstance(item, RenderEntry)]
