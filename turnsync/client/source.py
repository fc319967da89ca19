"""Where a viewer reads authoritative encounter state from."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol

import httpx

from turnsync.backend.store import EncounterStore


class EncounterFetchError(RuntimeError):
    """A poll could not obtain encounter state; retry on the next tick."""


class EncounterSource(Protocol):
    async def fetch(self) -> Mapping[str, Any]:
        """Return the current encounter record."""


def _unwrap(payload: Any) -> Any:
    if isinstance(payload, Mapping) and isinstance(payload.get("state"), Mapping):
        return payload["state"]
    return payload


@dataclass
class HttpEncounterSource:
    """Polls the encounter API; without an encounter id it follows the current encounter."""

    base_url: str
    encounter_id: str | None = None
    timeout: float = 5.0
    client: httpx.AsyncClient | None = None
    _owns_client: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        self.base_url = self.base_url.rstrip("/")
        if self.client is None:
            self.client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True

    @property
    def path(self) -> str:
        if self.encounter_id:
            return f"/api/encounters/{self.encounter_id}"
        return "/api/encounters/current/active"

    async def fetch(self) -> Mapping[str, Any]:
        url = f"{self.base_url}{self.path}"
        try:
            response = await self.client.get(url)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise EncounterFetchError(f"GET {url} returned {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise EncounterFetchError(f"GET {url} failed: {exc!r}") from exc
        except ValueError as exc:
            raise EncounterFetchError(f"GET {url} returned a non-JSON body") from exc
        return _unwrap(payload)

    async def aclose(self) -> None:
        if self._owns_client and self.client is not None:
            await self.client.aclose()


@dataclass
class StoreEncounterSource:
    """Reads an in-process store, e.g. a viewer running next to the controller."""

    store: EncounterStore
    encounter_id: str | None = None

    async def fetch(self) -> Mapping[str, Any]:
        if self.encounter_id:
            record = self.store.get_encounter_state(encounter_id=self.encounter_id)
        else:
            record = self.store.get_current_encounter()
        if record is None:
            raise EncounterFetchError(f"encounter {self.encounter_id or 'current'} not found")
        return record.state

    async def aclose(self) -> None:
        return None
