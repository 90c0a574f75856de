"""Integration tests for the roompanel aiohttp application.

The application is built through ``_make_app`` with an in-memory room
registry, a canned event fetcher and a frozen clock, then exercised over HTTP.
"""

import datetime

import pytest
from aiohttp.test_utils import TestClient, TestServer

import roompanel.api.server as server_module
from roompanel.domain.room_status import RoomStatusService
from roompanel.rooms.store import InMemoryRoomStore, RoomRecord

pytestmark = [pytest.mark.integration]


class CannedFetcher:
    """Returns the same events for every calendar URL."""

    def __init__(self, events) -> None:
        self.events = events
        self.urls: list[str] = []

    async def fetch(self, url, username, password, reference_date):
        self.urls.append(url)
        return list(self.events)


@pytest.fixture
def rooms() -> InMemoryRoomStore:
    return InMemoryRoomStore(
        [
            RoomRecord(
                id="r1",
                name="Blue room",
                caldav_url="https://cal.example.com/r1/",
                username="r1",
                password="top-secret",
            ),
            RoomRecord(id="r2", name="Quiet room"),
        ]
    )


@pytest.fixture
def fetcher(make_event) -> CannedFetcher:
    return CannedFetcher(
        [
            make_event("Standup", (9, 0), (10, 0), organizer="Alice"),
            make_event("Review", (11, 0), (12, 0)),
        ]
    )


@pytest.fixture
def config() -> dict:
    return {"timezone": "Europe/Moscow", "server_port": 8085}


@pytest.fixture
async def make_client(monkeypatch, rooms, fetcher, reference_time):
    """Factory building a TestClient for a given config."""
    monkeypatch.setattr(server_module, "get_server_ips", lambda: ["192.168.1.20"])
    clients: list[TestClient] = []

    async def _make(cfg: dict) -> TestClient:
        app = await server_module._make_app(
            cfg,
            room_store=rooms,
            status_service=RoomStatusService(fetcher),
            time_provider=lambda: reference_time,
        )
        client = TestClient(TestServer(app))
        await client.start_server()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        await client.close()


@pytest.fixture
async def client(make_client, config) -> TestClient:
    return await make_client(config)


class TestApiRoutes:
    async def test_list_rooms_when_called_then_registry_without_passwords(self, client) -> None:
        resp = await client.get("/api/rooms")

        assert resp.status == 200
        data = await resp.json()
        assert set(data["rooms"]) == {"r1", "r2"}
        assert data["rooms"]["r1"]["caldavUrl"] == "https://cal.example.com/r1/"
        assert "password" not in data["rooms"]["r1"]
        assert "top-secret" not in await resp.text()
        assert data["serverIPs"] == ["192.168.1.20"]
        assert data["port"] == 8085

    async def test_room_events_when_meeting_running_then_busy_payload(self, client) -> None:
        resp = await client.get("/api/rooms/r1/events")

        assert resp.status == 200
        data = await resp.json()
        assert data["isFree"] is False
        assert data["status"] == "busy"
        assert data["remainingMinutes"] == 30
        assert data["currentEvent"]["name"] == "Standup"
        assert data["currentEvent"]["organizer"] == "Alice"
        assert data["currentEvent"]["dateFrom"] == "2024-01-15T09:00:00+03:00"
        assert data["nextEvent"]["name"] == "Review"
        assert [e["name"] for e in data["events"]] == ["Standup", "Review"]

    async def test_room_events_when_no_calendar_then_free(self, client, fetcher) -> None:
        resp = await client.get("/api/rooms/r2/events")

        data = await resp.json()
        assert data["isFree"] is True
        assert data["status"] == "free"
        assert data["currentEvent"] is None
        assert data["remainingMinutes"] is None
        assert fetcher.urls == []

    async def test_room_events_when_unknown_room_then_404_json(self, client) -> None:
        resp = await client.get("/api/rooms/nope/events")

        assert resp.status == 404
        assert await resp.json() == {"error": "Room not found"}

    async def test_health_when_called_then_status_and_room_count(self, client) -> None:
        await client.get("/api/rooms/r1/events")

        resp = await client.get("/api/health")

        data = await resp.json()
        assert data["status"] == "ok"
        assert data["room_count"] == 2
        assert data["resolutions"] == 1
        assert data["server_time_iso"] == "2024-01-15T09:30:00+03:00"
        assert "logging" in data

    async def test_responses_when_any_route_then_request_id_header(self, client) -> None:
        resp = await client.get("/api/rooms", headers={"X-Request-ID": "kiosk-7"})

        assert resp.headers["X-Request-ID"] == "kiosk-7"


class TestDisplayRoutes:
    async def test_display_when_token_missing_then_single_redirect(self, client) -> None:
        resp = await client.get("/room/r1", allow_redirects=False)

        assert resp.status == 302
        assert resp.headers["Location"] == "/room/r1?rmspanel=busy"
        assert "X-Request-ID" in resp.headers

    async def test_display_when_token_stale_then_redirect_to_fresh_token(self, client) -> None:
        resp = await client.get("/room/r1?rmspanel=free", allow_redirects=False)

        assert resp.status == 302
        assert resp.headers["Location"] == "/room/r1?rmspanel=busy"

    async def test_display_when_token_matches_then_page_rendered(self, client) -> None:
        resp = await client.get("/room/r1?rmspanel=busy", allow_redirects=False)

        assert resp.status == 200
        assert resp.content_type == "text/html"
        page = await resp.text()
        assert '<meta http-equiv="refresh" content="30">' in page
        assert "Standup" in page
        assert "Ends in: 30 min." in page

    async def test_display_when_redirect_followed_then_lands_on_page(self, client) -> None:
        resp = await client.get("/room/r1")

        assert resp.status == 200
        assert resp.url.query["rmspanel"] == "busy"
        assert len(resp.history) == 1

    async def test_display_when_extra_params_and_stale_token_then_clean_redirect(
        self, client
    ) -> None:
        resp = await client.get("/room/r1?rmspanel=free&hop=1", allow_redirects=False)

        assert resp.status == 302
        assert resp.headers["Location"] == "/room/r1?rmspanel=busy"

    async def test_display_when_kiosk_reloads_across_transition_then_one_url_change(
        self, monkeypatch, rooms, fetcher, reference_time
    ) -> None:
        """A kiosk reloading in place sees exactly one navigation per free/busy change."""
        monkeypatch.setattr(server_module, "get_server_ips", lambda: [])
        clock = {"now": reference_time.replace(hour=10, minute=30)}
        app = await server_module._make_app(
            {"timezone": "Europe/Moscow"},
            room_store=rooms,
            status_service=RoomStatusService(fetcher),
            time_provider=lambda: clock["now"],
        )

        async with TestClient(TestServer(app)) as kiosk:
            seen: list[str] = []
            current = "/room/r1"

            async def load() -> str:
                nonlocal current
                resp = await kiosk.get(current)
                assert resp.status == 200
                page = await resp.text()
                assert '<meta http-equiv="refresh" content="30">' in page
                if resp.url.path_qs != current or not seen:
                    seen.append(resp.url.path_qs)
                current = resp.url.path_qs
                return page

            await load()
            for _ in range(3):
                await load()

            clock["now"] = reference_time.replace(hour=11, minute=5)
            pages = [await load() for _ in range(3)]

        assert seen == ["/room/r1?rmspanel=free", "/room/r1?rmspanel=busy"]
        assert all('data-status="busy"' in page for page in pages)

    async def test_display_when_room_without_calendar_then_free_page(self, client) -> None:
        resp = await client.get("/room/r2?rmspanel=free", allow_redirects=False)

        assert resp.status == 200
        page = await resp.text()
        assert "<h2>Free</h2>" in page
        assert 'data-status="free"' in page

    async def test_display_when_unknown_room_then_404(self, client) -> None:
        resp = await client.get("/room/nope", allow_redirects=False)

        assert resp.status == 404

    async def test_display_when_custom_status_values_then_colour_tokens(
        self, make_client, config
    ) -> None:
        client = await make_client(
            {**config, "status_values": {"free": "green", "busy": "red"}, "display_reload_seconds": 60}
        )

        redirect = await client.get("/room/r1", allow_redirects=False)
        page = await client.get("/room/r1?rmspanel=red", allow_redirects=False)

        assert redirect.headers["Location"] == "/room/r1?rmspanel=red"
        assert page.status == 200
        assert 'content="60"' in await page.text()

    async def test_index_when_called_then_links_every_room(self, client) -> None:
        resp = await client.get("/")

        page = await resp.text()
        assert '<a href="/room/r1">Blue room</a>' in page
        assert '<a href="/room/r2">Quiet room</a>' in page


class TestServerHelpers:
    def test_event_to_api_model_when_event_then_camel_case_fields(self, make_event) -> None:
        model = server_module._event_to_api_model(make_event("Sync", (9, 0), (9, 30)))

        assert model == {
            "name": "Sync",
            "dateFrom": "2024-01-15T09:00:00+03:00",
            "dateTo": "2024-01-15T09:30:00+03:00",
            "organizer": None,
            "description": None,
        }

    def test_serialize_iso_when_naive_then_utc(self) -> None:
        naive = datetime.datetime(2024, 1, 15, 6, 30)

        assert server_module._serialize_iso(naive) == "2024-01-15T06:30:00+00:00"
        assert server_module._serialize_iso(None) is None

    def test_build_room_store_when_single_room_then_in_memory(self) -> None:
        store = server_module.build_room_store(
            {"single_room": {"id": "default", "name": "Meeting room", "caldavUrl": "https://x/"}}
        )

        assert isinstance(store, InMemoryRoomStore)
        room = store.get_room("default")
        assert room is not None
        assert room.calendar_source.is_configured is True

    def test_build_room_store_when_rooms_file_then_json_store(self, tmp_path) -> None:
        rooms_file = tmp_path / "rooms.json"
        rooms_file.write_text('{"r9": {"name": "Nine"}}', encoding="utf-8")

        store = server_module.build_room_store({"rooms_file": str(rooms_file)})

        assert [room.id for room in store.list_rooms()] == ["r9"]

    def test_build_status_mapper_when_config_then_param_and_values(self) -> None:
        mapper = server_module.build_status_mapper(
            {"status_param": "state", "status_values": {"busy": "red"}}
        )

        assert mapper.param_name == "state"
        assert mapper.plan("/room/a", {"state": "red"}, is_free=False).needs_redirect is False

    def test_get_server_ips_when_called_then_no_loopback(self) -> None:
        assert all(not ip.startswith("127.") for ip in server_module.get_server_ips())
