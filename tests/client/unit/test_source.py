import httpx
import pytest

from turnsync.backend.store import InMemoryEncounterStore
from turnsync.client.source import EncounterFetchError, HttpEncounterSource, StoreEncounterSource

BASE_URL = "http://table.local/"


def _transport(routes: dict[str, httpx.Response]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        return routes.get(request.url.path, httpx.Response(404, json={"detail": "Encounter not found"}))

    return httpx.MockTransport(handler)


@pytest.mark.asyncio
async def test_fetch_unwraps_state_envelope() -> None:
    routes = {"/api/encounters/enc-1": httpx.Response(200, json={"state": {"id": "enc-1", "round": 3}})}
    async with httpx.AsyncClient(transport=_transport(routes)) as client:
        source = HttpEncounterSource(base_url=BASE_URL, encounter_id="enc-1", client=client)

        record = await source.fetch()

    assert source.base_url == "http://table.local"
    assert record == {"id": "enc-1", "round": 3}


@pytest.mark.asyncio
async def test_fetch_without_encounter_id_follows_current_encounter() -> None:
    routes = {"/api/encounters/current/active": httpx.Response(200, json={"state": {"id": "latest"}})}
    async with httpx.AsyncClient(transport=_transport(routes)) as client:
        source = HttpEncounterSource(base_url=BASE_URL, client=client)

        record = await source.fetch()

    assert source.path == "/api/encounters/current/active"
    assert record["id"] == "latest"


@pytest.mark.asyncio
async def test_error_status_raises_fetch_error() -> None:
    async with httpx.AsyncClient(transport=_transport({})) as client:
        source = HttpEncounterSource(base_url=BASE_URL, encounter_id="missing", client=client)

        with pytest.raises(EncounterFetchError, match="404"):
            await source.fetch()


@pytest.mark.asyncio
async def test_non_json_body_raises_fetch_error() -> None:
    routes = {"/api/encounters/enc-1": httpx.Response(200, text="<html>maintenance</html>")}
    async with httpx.AsyncClient(transport=_transport(routes)) as client:
        source = HttpEncounterSource(base_url=BASE_URL, encounter_id="enc-1", client=client)

        with pytest.raises(EncounterFetchError, match="non-JSON"):
            await source.fetch()


@pytest.mark.asyncio
async def test_connection_error_raises_fetch_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        source = HttpEncounterSource(base_url=BASE_URL, encounter_id="enc-1", client=client)

        with pytest.raises(EncounterFetchError):
            await source.fetch()


@pytest.mark.asyncio
async def test_fetch_against_api_app() -> None:
    pytest.importorskip("fastapi")
    from turnsync.backend.api import create_app

    store = InMemoryEncounterStore()
    created = store.create_encounter(name="Wired")
    app = create_app(store=store)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app)) as client:
        source = HttpEncounterSource(base_url="http://testserver", encounter_id=created.encounter_id, client=client)

        record = await source.fetch()

    assert record["id"] == created.encounter_id
    assert record["meta"]["name"] == "Wired"


@pytest.mark.asyncio
async def test_owned_client_is_closed() -> None:
    source = HttpEncounterSource(base_url=BASE_URL, encounter_id="enc-1")

    await source.aclose()

    assert source.client.is_closed


@pytest.mark.asyncio
async def test_store_source_reads_named_or_current_encounter() -> None:
    store = InMemoryEncounterStore()
    first = store.create_encounter(name="First")
    second = store.create_encounter(name="Second")

    named = await StoreEncounterSource(store, encounter_id=first.encounter_id).fetch()
    current = await StoreEncounterSource(store).fetch()

    assert named["id"] == first.encounter_id
    assert current["id"] == second.encounter_id


@pytest.mark.asyncio
async def test_store_source_raises_when_nothing_to_read() -> None:
    with pytest.raises(EncounterFetchError):
        await StoreEncounterSource(InMemoryEncounterStore()).fetch()

    with pytest.raises(EncounterFetchError):
        await StoreEncounterSource(InMemoryEncounterStore(), encounter_id="missing").fetch()
