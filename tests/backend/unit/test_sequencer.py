import pytest

from turnsync.backend.models import Combatant
from turnsync.backend.sequencer import (
    RenderEntry,
    RoundBoundaryMarker,
    boundary_position,
    render_entries,
    sequence,
)


def _order(*names: str) -> tuple[Combatant, ...]:
    return tuple(Combatant(id=name.lower(), name=name) for name in names)


def _labels(items) -> list[str]:
    return ["|" if isinstance(item, RoundBoundaryMarker) else item.entry.name for item in items]


def test_sequence_rotates_and_places_marker_after_last_in_order() -> None:
    items = sequence(_order("A", "B", "C", "D"), 1)

    assert _labels(items) == ["B", "C", "D", "|", "A"]
    assert [entry.original_index for entry in render_entries(items)] == [1, 2, 3, 0]
    assert [entry.render_index for entry in render_entries(items)] == [0, 1, 2, 3]
    assert items[3] == RoundBoundaryMarker(after_render_index=2)


def test_marker_is_last_when_display_starts_at_top_of_order() -> None:
    items = sequence(_order("A", "B", "C"), 0)

    assert _labels(items) == ["A", "B", "C", "|"]
    assert boundary_position(items) == 3


def test_marker_follows_first_row_when_last_combatant_is_acting() -> None:
    items = sequence(_order("A", "B", "C"), 2, round_number=4)

    assert _labels(items) == ["C", "|", "A", "B"]
    assert items[1] == RoundBoundaryMarker(after_render_index=0, round_number=5)


def test_empty_order_yields_empty_sequence() -> None:
    assert sequence((), 0) == ()
    assert boundary_position(()) == -1


def test_single_combatant_yields_entry_and_marker() -> None:
    items = sequence(_order("Solo"), 0)

    assert len(items) == 2
    assert isinstance(items[0], RenderEntry)
    assert isinstance(items[1], RoundBoundaryMarker)


def test_out_of_range_display_index_wraps() -> None:
    assert sequence(_order("A", "B", "C"), 4) == sequence(_order("A", "B", "C"), 1)


@pytest.mark.parametrize("size", [1, 2, 3, 7])
def test_every_start_has_one_marker_and_expected_length(size: int) -> None:
    order = _order(*[f"C{n}" for n in range(size)])
    for start in range(size):
        items = sequence(order, start)
        markers = [item for item in items if isinstance(item, RoundBoundaryMarker)]
        assert len(markers) == 1
        assert len(items) == size + 1
        assert render_entries(items)[0].original_index == start


def test_sequence_is_idempotent() -> None:
    order = _order("A", "B", "C")

    assert sequence(order, 2, round_number=3) == sequence(order, 2, round_number=3)
