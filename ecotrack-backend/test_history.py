from datetime import datetime, timedelta

import pytest

from ecotrack import crud
from ecotrack.services.history import get_historical_power_data, get_historical_room_data


@pytest.fixture
def rooms(db):
    crud.upsert_room(db, "bedroom", "Bedroom")
    crud.upsert_room(db, "living_room", "Living Room")
    db.commit()


def _reading(room_id, timestamp, temperature=None, **values):
    return {"room_id": room_id, "timestamp": timestamp, "temperature": temperature, **values}


def test_hourly_mode_averages_readings_within_the_hour(db, rooms):
    base = datetime(2026, 3, 2, 10, 5)
    crud.insert_room_readings(db, [
        _reading("bedroom", base + timedelta(minutes=10 * i), temperature=t, motion=(i == 0))
        for i, t in enumerate([20.0, 21.0, 22.0, 23.0, 24.5])
    ])
    db.commit()

    rows = get_historical_room_data(db, datetime(2026, 3, 2, 9), datetime(2026, 3, 2, 12), aggregation="hourly")

    assert len(rows) == 1
    assert rows[0]["timestamp"] == datetime(2026, 3, 2, 10)
    assert rows[0]["room_id"] == "bedroom"
    assert rows[0]["room_name"] == "Bedroom"
    assert rows[0]["temperature"] == pytest.approx((20.0 + 21.0 + 22.0 + 23.0 + 24.5) / 5)
    assert rows[0]["motion"] == pytest.approx(0.2)


def test_hourly_mode_groups_per_room_and_hour(db, rooms):
    crud.insert_room_readings(db, [
        _reading("bedroom", datetime(2026, 3, 2, 10, 15), temperature=20.0),
        _reading("bedroom", datetime(2026, 3, 2, 11, 15), temperature=22.0),
        _reading("living_room", datetime(2026, 3, 2, 10, 45), temperature=25.0),
    ])
    db.commit()

    rows = get_historical_room_data(db, datetime(2026, 3, 2), datetime(2026, 3, 3), aggregation="hourly")

    assert [(r["timestamp"].hour, r["room_id"]) for r in rows] == [
        (10, "bedroom"), (10, "living_room"), (11, "bedroom"),
    ]


def test_raw_mode_keeps_maximum_of_duplicate_timestamps(db, rooms):
    ts = datetime(2026, 3, 2, 10, 30)
    crud.insert_room_readings(db, [
        _reading("bedroom", ts, temperature=21.0, humidity=40.0),
        _reading("bedroom", ts, temperature=23.5, humidity=38.0),
    ])
    db.commit()

    rows = get_historical_room_data(db, ts - timedelta(hours=1), ts + timedelta(hours=1))

    assert len(rows) == 1
    assert rows[0]["timestamp"] == ts
    assert rows[0]["temperature"] == 23.5
    assert rows[0]["humidity"] == 40.0


def test_raw_mode_is_ordered_and_filtered_by_room(db, rooms):
    crud.insert_room_readings(db, [
        _reading("living_room", datetime(2026, 3, 2, 10, 2), temperature=25.0),
        _reading("bedroom", datetime(2026, 3, 2, 10, 1), temperature=20.0),
        _reading("bedroom", datetime(2026, 3, 2, 10, 0), temperature=19.0),
    ])
    db.commit()

    rows = get_historical_room_data(db, datetime(2026, 3, 2), datetime(2026, 3, 3), room_ids=["bedroom"])

    assert [r["temperature"] for r in rows] == [19.0, 20.0]
    assert all(r["room_id"] == "bedroom" for r in rows)


def test_room_rows_carry_meter_values_of_the_same_bucket(db, rooms):
    ts = datetime(2026, 3, 2, 10, 30)
    crud.insert_room_readings(db, [_reading("bedroom", ts, temperature=21.0)])
    crud.insert_power_readings(db, [{"power": 180.0, "energy": 4.2, "timestamp": ts}])
    db.commit()

    rows = get_historical_room_data(db, ts - timedelta(minutes=5), ts + timedelta(minutes=5))

    assert rows[0]["power"] == 180.0
    assert rows[0]["energy"] == 4.2


def test_empty_window_returns_empty_list(db, rooms):
    crud.insert_room_readings(db, [_reading("bedroom", datetime(2026, 3, 2, 10), temperature=21.0)])
    db.commit()

    assert get_historical_room_data(db, datetime(2025, 1, 1), datetime(2025, 1, 2)) == []
    assert get_historical_room_data(db, datetime(2025, 1, 1), datetime(2025, 1, 2), aggregation="hourly") == []
    assert get_historical_power_data(db, datetime(2025, 1, 1), datetime(2025, 1, 2)) == []


def test_rejects_inverted_window_and_unknown_aggregation(db):
    with pytest.raises(ValueError):
        get_historical_room_data(db, datetime(2026, 3, 2), datetime(2026, 3, 1))
    with pytest.raises(ValueError):
        get_historical_room_data(db, datetime(2026, 3, 1), datetime(2026, 3, 2), aggregation="daily")


def test_power_history_hourly_average(db):
    crud.insert_power_readings(db, [
        {"power": 100.0, "voltage": 230.0, "timestamp": datetime(2026, 3, 2, 8, 0)},
        {"power": 300.0, "voltage": 232.0, "timestamp": datetime(2026, 3, 2, 8, 59)},
        {"power": 50.0, "voltage": 229.0, "timestamp": datetime(2026, 3, 2, 9, 1)},
    ])
    db.commit()

    rows = get_historical_power_data(db, datetime(2026, 3, 2), datetime(2026, 3, 3), aggregation="hourly")

    assert [r["timestamp"] for r in rows] == [datetime(2026, 3, 2, 8), datetime(2026, 3, 2, 9)]
    assert rows[0]["power"] == pytest.approx(200.0)
    assert rows[0]["voltage"] == pytest.approx(231.0)
    assert rows[1]["current"] is None
