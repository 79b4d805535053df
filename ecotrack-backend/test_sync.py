import asyncio
from datetime import datetime, timedelta

from ecotrack.errors import RealtimeStoreError
from ecotrack.models import PowerReading, Room, RoomSensorReading
from ecotrack.services.history import get_historical_room_data
from ecotrack.services.sync import SyncService, build_room_reading

from conftest import TEST_ROOMS


def _seed_firebase(provider):
    asyncio.run(provider.set_value("rooms/bedroom", {
        "temperature": 24.5, "humidity": 61, "light": 120, "motion": True,
        "updatedAt": "2026-01-18T14:30:00Z",
    }))
    asyncio.run(provider.set_value("rooms/living_room", {
        "temperature": 26.0, "humidity": 55, "light": 300, "motion": False,
        "updatedAt": "2026-01-18 20:00:00 IST",
    }))
    asyncio.run(provider.set_value("pzem", {
        "current": 1.2, "voltage": 231.4, "power": 250.0, "energy": 12.345,
        "frequency": 50.0, "pf": 0.92, "updatedAt": 1768746600000,
    }))


def test_sync_stores_every_source(sync_service, provider, db):
    _seed_firebase(provider)

    result = asyncio.run(sync_service.run_tick())

    assert result.success is True
    assert sorted(result.synced) == ["bedroom_sensor", "living_room_sensor", "pzem_data"]
    assert result.count == 3
    assert result.failed == []

    readings = {r.room_id: r for r in db.query(RoomSensorReading).all()}
    assert readings["bedroom"].temperature == 24.5
    assert readings["bedroom"].motion is True
    assert readings["bedroom"].timestamp == datetime(2026, 1, 18, 14, 30)
    # 20:00 IST is 14:30 UTC
    assert readings["living_room"].timestamp == datetime(2026, 1, 18, 14, 30)

    power = db.query(PowerReading).one()
    assert power.voltage == 231.4
    assert power.timestamp == datetime(2026, 1, 18, 14, 30)

    assert {room.id for room in db.query(Room).all()} == {"bedroom", "living_room"}


def test_sync_skips_unreachable_source(sync_service, provider, db, monkeypatch):
    _seed_firebase(provider)
    original = provider.get_room_snapshot

    async def flaky_snapshot(room_id):
        if room_id == "living_room":
            raise RealtimeStoreError(f"rooms/{room_id}", "connection reset")
        return await original(room_id)

    monkeypatch.setattr(provider, "get_room_snapshot", flaky_snapshot)

    result = asyncio.run(sync_service.run_tick())

    assert result.success is True
    assert len(result.synced) == 2
    assert result.failed == ["living_room_sensor"]
    assert db.query(RoomSensorReading).filter(RoomSensorReading.room_id == "living_room").count() == 0


def test_sync_skips_source_with_bad_timestamp(sync_service, provider, db):
    _seed_firebase(provider)
    asyncio.run(provider.set_value("rooms/bedroom/updatedAt", "yesterday-ish"))

    result = asyncio.run(sync_service.run_tick())

    assert result.success is True
    assert "bedroom_sensor" in result.failed
    assert "bedroom_sensor" not in result.synced
    assert db.query(RoomSensorReading).count() == 1


def test_sync_with_nothing_in_firebase(sync_service, db):
    result = asyncio.run(sync_service.run_tick())

    assert result.success is True
    assert result.synced == []
    assert result.count == 0
    assert db.query(Room).count() == 0


def test_sync_fails_whole_tick_when_database_is_down(broken_session_factory, provider):
    _seed_firebase(provider)
    service = SyncService(broken_session_factory, provider, TEST_ROOMS, "pzem")

    result = asyncio.run(service.run_tick())

    assert result.success is False
    assert result.database_unavailable is True
    assert result.synced == []
    assert result.count == 0


def test_overlapping_tick_is_skipped(sync_service, provider, db):
    _seed_firebase(provider)
    sync_service._guard.acquire()
    try:
        result = asyncio.run(sync_service.run_tick())
    finally:
        sync_service._guard.release()

    assert result.skipped is True
    assert result.success is False
    assert db.query(RoomSensorReading).count() == 0

    # the guard is free again afterwards
    assert asyncio.run(sync_service.run_tick()).success is True
    assert sync_service.is_running is False


def test_build_room_reading_ignores_non_numeric_values():
    row = build_room_reading("bedroom", {"temperature": "n/a", "humidity": "48.5", "updatedAt": None})

    assert row["temperature"] is None
    assert row["humidity"] == 48.5
    assert row["motion"] is None
    assert row["timestamp"] is not None


def _make_realtime_store_unreachable(provider, monkeypatch):
    async def unreachable(*args, **kwargs):
        raise RealtimeStoreError("rooms", "connection refused")

    monkeypatch.setattr(provider, "get_room_snapshot", unreachable)
    monkeypatch.setattr(provider, "get_power_snapshot", unreachable)


def test_sync_fails_when_no_source_can_be_read(sync_service, provider, db, monkeypatch):
    _seed_firebase(provider)
    _make_realtime_store_unreachable(provider, monkeypatch)

    result = asyncio.run(sync_service.run_tick())

    assert result.success is False
    assert result.realtime_unavailable is True
    assert result.error == "Realtime database unavailable"
    assert result.synced == []
    assert sorted(result.failed) == ["bedroom_sensor", "living_room_sensor", "pzem_data"]
    assert db.query(Room).count() == 0
    assert db.query(RoomSensorReading).count() == 0


def test_snapshots_without_timestamp_share_the_tick_time(sync_service, provider, db):
    asyncio.run(provider.set_value("rooms/bedroom", {"temperature": 21.0}))
    asyncio.run(provider.set_value("pzem", {"power": 250.0, "energy": 3.0}))

    assert asyncio.run(sync_service.run_tick()).count == 2

    reading = db.query(RoomSensorReading).one()
    assert db.query(PowerReading).one().timestamp == reading.timestamp

    rows = get_historical_room_data(
        db, reading.timestamp - timedelta(minutes=1), reading.timestamp + timedelta(minutes=1)
    )
    assert rows[0]["power"] == 250.0
    assert rows[0]["energy"] == 3.0
