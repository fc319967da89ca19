"""Typed encounter model read by the turn-order resolver and player projection."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Mapping, Union


COMBAT_ACTIVE = "active"
COMBAT_COMPLETED = "completed"


class MalformedEncounterError(ValueError):
    """Raised when an encounter record is not structurally usable."""


@dataclass(frozen=True)
class Combatant:
    id: str
    name: str
    initiative: int | None = None
    initiative_modifier: int = 0
    initiative_tie_breaker: float = 0
    visible_to_players: bool = True
    sidekick_of: str | None = None
    concentration: bool = False
    conditions: frozenset[str] = frozenset()
    hp: int = 0
    base_hp: int = 0
    temp_hp: int = 0
    max_hp_modifier: int = 0
    token_url: str | None = None
    image_url: str | None = None

    @property
    def effective_max_hp(self) -> int:
        return self.base_hp + self.max_hp_modifier

    @property
    def is_bloodied(self) -> bool:
        max_hp = self.effective_max_hp
        if max_hp <= 0:
            return False
        percent = self.hp / max_hp * 100
        return 0 < percent < 50


@dataclass(frozen=True)
class LairActionMarker:
    id: str
    initiative: int | None = None
    name: str = "Lair Actions"

    @property
    def visible_to_players(self) -> bool:
        return False


FullOrderEntry = Union[Combatant, LairActionMarker]

# Raw initiativeOrder item: a combatant id, a lair dict or anything unrecognised.
OrderRef = Union[str, LairActionMarker, None]


@dataclass(frozen=True)
class EncounterState:
    round: int = 1
    turn_index: int = 0
    initiative_order: tuple[OrderRef, ...] = ()
    combatants: Mapping[str, Combatant] = field(default_factory=dict)
    player_screen_settings: Mapping[str, Any] = field(default_factory=dict)
    combat_status: str = COMBAT_ACTIVE
    encounter_id: str | None = None
    name: str = ""

    @property
    def is_completed(self) -> bool:
        return self.combat_status == COMBAT_COMPLETED


def parse_encounter_state(record: Any) -> EncounterState:
    """Build an EncounterState from the JSON-shaped record served by the store."""
    if not isinstance(record, Mapping):
        raise MalformedEncounterError(f"encounter record must be an object, got {type(record).__name__}")

    raw_order = record.get("initiativeOrder", [])
    if raw_order is None:
        raw_order = []
    if not isinstance(raw_order, list):
        raise MalformedEncounterError("initiativeOrder must be a list")

    raw_combatants = record.get("combatants", {})
    if raw_combatants is None:
        raw_combatants = {}
    if not isinstance(raw_combatants, Mapping):
        raise MalformedEncounterError("combatants must be an object")

    settings = record.get("playerScreenSettings") or {}
    if not isinstance(settings, Mapping):
        raise MalformedEncounterError("playerScreenSettings must be an object")

    combatants: dict[str, Combatant] = {}
    for key, raw in raw_combatants.items():
        if not isinstance(raw, Mapping):
            raise MalformedEncounterError(f"combatant {key!r} must be an object")
        try:
            combatants[str(key)] = parse_combatant(str(key), raw)
        except MalformedEncounterError:
            raise
        except (TypeError, ValueError, OverflowError) as exc:
            raise MalformedEncounterError(f"combatant {key!r} is malformed: {exc}") from exc

    meta = record.get("meta")
    name = record.get("name")
    if name is None and isinstance(meta, Mapping):
        name = meta.get("name")

    return EncounterState(
        round=max(1, _require_int(record.get("round"), "round", default=1)),
        turn_index=_require_int(record.get("turnIndex"), "turnIndex", default=0),
        initiative_order=tuple(_parse_order_ref(item) for item in raw_order),
        combatants=combatants,
        player_screen_settings=dict(settings),
        combat_status=str(record.get("combatStatus") or COMBAT_ACTIVE),
        encounter_id=None if record.get("id") is None else str(record.get("id")),
        name=str(name or ""),
    )


def parse_combatant(combatant_id: str, raw: Mapping[str, Any]) -> Combatant:
    meta = raw.get("meta") if isinstance(raw.get("meta"), Mapping) else {}
    conditions = raw.get("conditions") or []
    if isinstance(conditions, str):
        conditions = [conditions]
    if not isinstance(conditions, (list, tuple)):
        raise MalformedEncounterError(f"combatant {combatant_id!r} conditions must be a list")
    sidekick_of = raw.get("sidekickOf")
    return Combatant(
        id=combatant_id,
        name=str(raw.get("name") or combatant_id),
        initiative=_optional_int(raw.get("initiative")),
        initiative_modifier=_optional_int(raw.get("initiativeModifier")) or 0,
        initiative_tie_breaker=_optional_float(raw.get("initiativeTieBreaker")) or 0,
        visible_to_players=raw.get("visibleToPlayers") is not False,
        sidekick_of=str(sidekick_of) if sidekick_of else None,
        concentration=bool(raw.get("concentration")),
        conditions=frozenset(str(condition) for condition in conditions if condition),
        hp=_hit_points(raw.get("hp")),
        base_hp=_hit_points(raw.get("baseHP")),
        temp_hp=_hit_points(raw.get("tempHP")),
        max_hp_modifier=_optional_int(raw.get("maxHPModifier")) or 0,
        token_url=raw.get("tokenUrl") or meta.get("tokenUrl"),
        image_url=raw.get("imageUrl") or meta.get("imageUrl"),
    )


def _parse_order_ref(item: Any) -> OrderRef:
    if isinstance(item, str):
        return item
    if isinstance(item, Mapping) and item.get("type") == "lair":
        return LairActionMarker(
            id=str(item.get("id") or "lair"),
            initiative=_optional_int(item.get("initiative")),
        )
    return None


def _hit_points(value: Any) -> int:
    # Monster imports sometimes carry {"average": 27, "formula": "5d8+5"}.
    if isinstance(value, Mapping):
        value = value.get("average")
    return _optional_int(value) or 0


def _require_int(value: Any, field_name: str, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        raise MalformedEncounterError(f"{field_name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise MalformedEncounterError(f"{field_name} must be an integer") from exc


def _optional_int(value: Any) -> int | None:
    number = _optional_float(value)
    if number is None:
        return None
    return int(number)


def _optional_float(value: Any) -> float | None:
    """Lenient numeric read: junk becomes None, but Infinity/NaN reject the record."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        raise MalformedEncounterError(f"non-finite number {value!r}")
    return number


@dataclass(frozen=True)
class EncounterRecord:
    encounter_id: str
    state: dict[str, Any]
