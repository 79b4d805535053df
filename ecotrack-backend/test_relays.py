import asyncio

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from ecotrack import crud
from ecotrack.database import RelaySource, get_utc_datetime
from ecotrack.models import AuditLog, RelayState, Room
from ecotrack.services.relay_control import sync_relay_states
from ecotrack.timestamps import parse_timestamp


def _command(**overrides):
    body = {"relayId": "bedroom_light", "roomId": "bedroom", "type": "light", "state": True}
    body.update(overrides)
    return body


def test_relay_command_round_trip(client, provider, db):
    before = get_utc_datetime().replace(microsecond=0)

    response = client.post("/api/relay-control", json=_command())

    assert response.status_code == 200
    relay = response.json()["relay"]
    assert relay["id"] == "bedroom_light"
    assert relay["roomId"] == "bedroom"
    assert relay["type"] == "light"
    assert relay["state"] is True
    assert parse_timestamp(relay["updatedAt"]) >= before

    assert asyncio.run(provider.get_relay_state("bedroom_light")) is True
    # the room is created on demand
    assert db.get(Room, "bedroom") is not None
    assert db.query(AuditLog).filter(AuditLog.action == "relay_command").count() == 1

    states = client.get("/api/relay-states", params={"relayId": "bedroom_light"}).json()
    assert states["count"] == 1
    assert states["data"][0]["state"] is True


def test_relay_command_overwrites_previous_state(client, provider, db):
    client.post("/api/relay-control", json=_command(state=True))
    response = client.post("/api/relay-control", json=_command(state=False))

    assert response.json()["relay"]["state"] is False
    assert "turned off" in response.json()["message"]
    assert db.query(RelayState).count() == 1
    assert asyncio.run(provider.get_relay_state("bedroom_light")) is False


@pytest.mark.parametrize("body", [
    _command(state="yes"),
    _command(state=1),
    {"relayId": "bedroom_light", "roomId": "bedroom", "type": "light"},
    {"roomId": "bedroom", "type": "light", "state": True},
    _command(relayId="kitchen_fan"),
])
def test_invalid_relay_commands_are_rejected(client, provider, db, body):
    response = client.post("/api/relay-control", json=body)

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert asyncio.run(provider.get_value("relays")) is None
    assert db.query(RelayState).count() == 0


def test_relay_command_reports_drift_when_history_write_fails(client, provider, db, monkeypatch):
    def failing_upsert(*args, **kwargs):
        raise OperationalError("INSERT INTO relay_states", {}, Exception("connection lost"))

    monkeypatch.setattr(crud, "upsert_relay_state", failing_upsert)

    response = client.post("/api/relay-control", json=_command())

    assert response.status_code == 503
    body = response.json()
    assert body["success"] is False
    assert body["liveApplied"] is True
    assert body["relayId"] == "bedroom_light"
    # the live write already happened
    assert asyncio.run(provider.get_relay_state("bedroom_light")) is True
    assert db.query(RelayState).count() == 0


def test_relay_command_drift_on_non_connectivity_error_is_500(client, monkeypatch):
    def failing_upsert(*args, **kwargs):
        raise IntegrityError("INSERT INTO relay_states", {}, Exception("constraint failed"))

    monkeypatch.setattr(crud, "upsert_relay_state", failing_upsert)

    response = client.post("/api/relay-control", json=_command())

    assert response.status_code == 500
    assert response.json()["liveApplied"] is True


def test_relay_states_filters(client, db):
    crud.upsert_room(db, "bedroom", "Bedroom")
    crud.upsert_room(db, "living_room", "Living Room")
    crud.upsert_relay_state(db, "bedroom_light", "bedroom", "light", True)
    crud.upsert_relay_state(db, "bedroom_fan", "bedroom", "fan", False)
    crud.upsert_relay_state(db, "living_room_light", "living_room", "light", False)
    db.commit()

    everything = client.get("/api/relay-states").json()
    by_room = client.get("/api/relay-states", params={"roomId": "bedroom"}).json()
    unknown = client.get("/api/relay-states", params={"relayId": "garage_door"}).json()

    assert everything["count"] == 3
    assert {r["id"] for r in by_room["data"]} == {"bedroom_light", "bedroom_fan"}
    assert unknown == {"success": True, "count": 0, "data": []}


def test_relay_sync_pulls_live_states(client, provider, db):
    asyncio.run(provider.set_relay_state("bedroom_light", True))

    response = client.post("/api/relay-sync")

    assert response.status_code == 200
    body = response.json()
    assert body["synced"] == ["bedroom_light"]
    assert body["relaysCount"] == 2
    assert db.get(RelayState, "bedroom_light").state is True


def test_sync_relay_states_skips_missing_relays(db, provider):
    asyncio.run(provider.set_relay_state("office_fan", False))
    relays = [RelaySource("office", "fan"), RelaySource("garage", "light")]

    result = asyncio.run(sync_relay_states(db, provider, relays))

    assert result.synced == ["office_fan"]
    assert result.failed == []
    relay = db.get(RelayState, "office_fan")
    assert relay.relay_type == "fan"
    assert relay.state is False
    assert db.get(Room, "office").name == "Office"
