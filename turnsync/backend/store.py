"""Encounter store interface and the in-memory implementation."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol
import uuid

from turnsync.backend.engine import apply_host_action
from turnsync.backend.models import EncounterRecord
from turnsync.backend.state import build_initial_state

logger = logging.getLogger(__name__)


class EncounterStore(Protocol):
    def create_encounter(self, name: str) -> EncounterRecord:
        """Create an encounter and persist its initial snapshot."""

    def get_encounter_state(self, encounter_id: str) -> EncounterRecord | None:
        """Return the current snapshot of an encounter."""

    def get_current_encounter(self) -> EncounterRecord | None:
        """Return the most recently updated encounter."""

    def apply_action(self, encounter_id: str, action: dict[str, Any]) -> dict[str, Any] | None:
        """Apply a controller action and return the new state."""


@dataclass
class InMemoryEncounterStore:
    def __post_init__(self) -> None:
        self._encounters: dict[str, dict[str, Any]] = {}
        self._touch_counter = 0

    def create_encounter(self, name: str) -> EncounterRecord:
        encounter_id = str(uuid.uuid4())
        state = build_initial_state(encounter_id=encounter_id, name=name)
        self._encounters[encounter_id] = {"state": state, "touched": self._next_touch()}
        logger.info(f"[EncounterStore] Created encounter {encounter_id} ({name!r})")
        return EncounterRecord(encounter_id=encounter_id, state=copy.deepcopy(state))

    def get_encounter_state(self, encounter_id: str) -> EncounterRecord | None:
        payload = self._encounters.get(encounter_id)
        if payload is None:
            return None
        # Readers get a snapshot; only apply_action writes.
        return EncounterRecord(encounter_id=encounter_id, state=copy.deepcopy(payload["state"]))

    def get_current_encounter(self) -> EncounterRecord | None:
        if not self._encounters:
            return None
        encounter_id = max(self._encounters, key=lambda key: self._encounters[key]["touched"])
        return self.get_encounter_state(encounter_id)

    def apply_action(self, encounter_id: str, action: dict[str, Any]) -> dict[str, Any] | None:
        payload = self._encounters.get(encounter_id)
        if payload is None:
            return None
        payload["state"] = self._next_state_with_action(state=payload["state"], action=action)
        payload["touched"] = self._next_touch()
        return copy.deepcopy(payload["state"])

    def _next_touch(self) -> int:
        # updatedAt can collide within one clock tick; a counter orders writes.
        self._touch_counter += 1
        return self._touch_counter

    def _next_state_with_action(self, state: dict[str, Any], action: dict[str, Any]) -> dict[str, Any]:
        reduced = apply_host_action(state=state, action=action)
        next_state = reduced.state
        next_state["version"] = int(state["version"]) + 1
        next_meta = dict(state["meta"])
        next_meta["updatedAt"] = datetime.now(timezone.utc).isoformat()
        next_state["meta"] = next_meta

        next_log = list(state.get("log", []))
        next_log.append({"kind": "action", "action": action})
        next_log.extend(reduced.engine_events)
        next_state["log"] = next_log
        logger.debug(
            f"[EncounterStore] {action.get('type')} -> version {next_state['version']}, "
            f"round {next_state.get('round')}, turnIndex {next_state.get('turnIndex')}"
        )
        return next_state


def create_store() -> EncounterStore:
    return InMemoryEncounterStore()
