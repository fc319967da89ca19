"""FastAPI endpoints for encounter state, controller actions and the player view."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from .models import MalformedEncounterError, parse_encounter_state
from .projection import player_view_payload, project
from .store import EncounterStore, InMemoryEncounterStore

logger = logging.getLogger(__name__)


class CreateEncounterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)


class CreateEncounterResponse(BaseModel):
    encounter_id: str
    state: dict[str, Any]


class EncounterStateResponse(BaseModel):
    state: dict[str, Any]


class ActionEnvelope(BaseModel):
    action: dict[str, Any]


def create_app(store: EncounterStore | None = None) -> FastAPI:
    app = FastAPI(title="Turn Sync API", version="0.3.0")
    encounter_store = store if store is not None else InMemoryEncounterStore()
    app.state.store = encounter_store

    def get_store() -> EncounterStore:
        return encounter_store

    @app.post("/api/encounters", response_model=CreateEncounterResponse)
    def create_encounter(
        payload: CreateEncounterRequest,
        local_store: EncounterStore = Depends(get_store),
    ) -> CreateEncounterResponse:
        created = local_store.create_encounter(name=payload.name)
        return CreateEncounterResponse(encounter_id=created.encounter_id, state=created.state)

    # Declared before /{encounter_id} so "current" is not taken as an id.
    @app.get("/api/encounters/current/active", response_model=EncounterStateResponse)
    def get_current_encounter(local_store: EncounterStore = Depends(get_store)) -> EncounterStateResponse:
        record = local_store.get_current_encounter()
        if record is None:
            raise HTTPException(status_code=404, detail="No encounters found")
        return EncounterStateResponse(state=record.state)

    @app.get("/api/encounters/{encounter_id}", response_model=EncounterStateResponse)
    def get_encounter(
        encounter_id: str,
        local_store: EncounterStore = Depends(get_store),
    ) -> EncounterStateResponse:
        record = local_store.get_encounter_state(encounter_id=encounter_id)
        if record is None:
            raise HTTPException(status_code=404, detail="Encounter not found")
        return EncounterStateResponse(state=record.state)

    @app.post("/api/encounters/{encounter_id}/actions", response_model=EncounterStateResponse)
    def post_action(
        encounter_id: str,
        payload: ActionEnvelope,
        local_store: EncounterStore = Depends(get_store),
    ) -> EncounterStateResponse:
        state = local_store.apply_action(encounter_id=encounter_id, action=payload.action)
        if state is None:
            raise HTTPException(status_code=404, detail="Encounter not found")
        return EncounterStateResponse(state=state)

    @app.get("/api/encounters/{encounter_id}/player-view")
    def get_player_view(
        encounter_id: str,
        local_store: EncounterStore = Depends(get_store),
    ) -> dict[str, Any]:
        record = local_store.get_encounter_state(encounter_id=encounter_id)
        if record is None:
            raise HTTPException(status_code=404, detail="Encounter not found")
        try:
            state = parse_encounter_state(record.state)
        except MalformedEncounterError as exc:
            logger.error(f"[PlayerView] Encounter {encounter_id} is malformed: {exc}")
            raise HTTPException(status_code=500, detail="Encounter record is malformed") from exc
        return player_view_payload(project(state))

    return app


app = create_app()
