"""State builders for encounter snapshots."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from .models import COMBAT_ACTIVE


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_initial_state(encounter_id: str, name: str) -> dict[str, Any]:
    """Return a fresh encounter record in the wire shape served to viewers."""
    now = _utc_now_iso()
    return {
        "id": encounter_id,
        "name": name,
        "version": 1,
        "combatStatus": COMBAT_ACTIVE,
        "round": 1,
        "turnIndex": 0,
        "initiativeOrder": [],
        "combatants": {},
        "playerScreenSettings": {},
        "log": [],
        "meta": {
            "name": name,
            "createdAt": now,
            "updatedAt": now,
        },
    }
