import pytest

from turnsync.backend.models import (
    Combatant,
    LairActionMarker,
    MalformedEncounterError,
    parse_encounter_state,
)


def test_parse_encounter_state_reads_wire_fields() -> None:
    state = parse_encounter_state(
        {
            "id": "enc-1",
            "name": "Goblin Cave",
            "round": 3,
            "turnIndex": 1,
            "initiativeOrder": ["a", {"type": "lair", "id": "lair-1", "initiative": 20}, "b"],
            "combatants": {
                "a": {"id": "a", "name": "Aria", "initiative": 18},
                "b": {"id": "b", "name": "Goblin", "visibleToPlayers": False},
            },
            "playerScreenSettings": {"zoom": 120},
            "combatStatus": "active",
        }
    )

    assert state.encounter_id == "enc-1"
    assert state.name == "Goblin Cave"
    assert state.round == 3
    assert state.turn_index == 1
    assert state.initiative_order == ("a", LairActionMarker(id="lair-1", initiative=20), "b")
    assert state.combatants["a"].initiative == 18
    assert state.combatants["b"].visible_to_players is False
    assert state.player_screen_settings == {"zoom": 120}
    assert state.is_completed is False


def test_parse_encounter_state_applies_defaults() -> None:
    state = parse_encounter_state({})

    assert state.round == 1
    assert state.turn_index == 0
    assert state.initiative_order == ()
    assert dict(state.combatants) == {}
    assert state.combat_status == "active"


def test_parse_encounter_state_falls_back_to_meta_name() -> None:
    state = parse_encounter_state({"meta": {"name": "Crypt"}})

    assert state.name == "Crypt"


def test_lair_marker_without_initiative_is_kept_with_none() -> None:
    state = parse_encounter_state({"initiativeOrder": [{"type": "lair", "id": "lair-x"}]})

    assert state.initiative_order == (LairActionMarker(id="lair-x", initiative=None),)
    assert state.initiative_order[0].visible_to_players is False


def test_unrecognised_order_items_become_empty_slots() -> None:
    state = parse_encounter_state({"initiativeOrder": ["a", 42, {"type": "other"}]})

    assert state.initiative_order == ("a", None, None)


@pytest.mark.parametrize(
    "record",
    [
        [],
        "not a record",
        {"initiativeOrder": "a,b"},
        {"combatants": ["a"]},
        {"combatants": {"a": "Aria"}},
        {"turnIndex": "first"},
        {"round": True},
        {"playerScreenSettings": ["blackMode"]},
        {"round": float("inf")},
        {"turnIndex": float("nan")},
        {"combatants": {"a": {"conditions": 5}}},
        {"combatants": {"a": {"initiative": float("inf")}}},
        {"combatants": {"a": {"initiativeTieBreaker": float("-inf")}}},
        {"initiativeOrder": [{"type": "lair", "id": "l", "initiative": float("nan")}]},
    ],
)
def test_parse_encounter_state_rejects_structurally_invalid_records(record) -> None:
    with pytest.raises(MalformedEncounterError):
        parse_encounter_state(record)


def test_combatant_normalises_hit_points_conditions_and_images() -> None:
    state = parse_encounter_state(
        {
            "combatants": {
                "ogre": {
                    "name": "Ogre",
                    "hp": {"average": 59, "formula": "7d10+21"},
                    "baseHP": "59",
                    "conditions": ["prone", "", "grappled"],
                    "concentration": 1,
                    "meta": {"tokenUrl": "https://img/ogre.webp"},
                    "sidekickOf": "",
                }
            }
        }
    )

    ogre = state.combatants["ogre"]
    assert ogre.id == "ogre"
    assert ogre.hp == 59
    assert ogre.base_hp == 59
    assert ogre.conditions == frozenset({"prone", "grappled"})
    assert ogre.concentration is True
    assert ogre.token_url == "https://img/ogre.webp"
    assert ogre.sidekick_of is None
    assert ogre.initiative is None


def test_combatant_map_key_wins_over_record_id() -> None:
    state = parse_encounter_state({"combatants": {"k1": {"id": "other", "name": "Kobold"}}})

    assert state.combatants["k1"].id == "k1"


def test_bloodied_uses_effective_max_hp() -> None:
    assert Combatant(id="a", name="A", hp=10, base_hp=30).is_bloodied is True
    assert Combatant(id="a", name="A", hp=15, base_hp=30).is_bloodied is False
    assert Combatant(id="a", name="A", hp=0, base_hp=30).is_bloodied is False
    assert Combatant(id="a", name="A", hp=15, base_hp=20, max_hp_modifier=20).is_bloodied is True
    assert Combatant(id="a", name="A", hp=5, base_hp=0).is_bloodied is False


def test_completed_status_is_reported() -> None:
    state = parse_encounter_state({"combatStatus": "completed"})

    assert state.is_completed is True


def test_unparseable_numbers_are_read_leniently() -> None:
    state = parse_encounter_state(
        {"combatants": {"a": {"initiative": "high", "hp": [1, 2], "initiativeModifier": "2.0"}}}
    )

    aria = state.combatants["a"]
    assert aria.initiative is None
    assert aria.hp == 0
    assert aria.initiative_modifier == 2
