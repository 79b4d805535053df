"""
Historical room sensor and power queries, raw or bucketed per hour
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import Integer, cast, func
from sqlalchemy.orm import Session

from ecotrack.models import PowerReading, Room, RoomSensorReading
from ecotrack.timestamps import parse_timestamp

logger = logging.getLogger(__name__)

AGGREGATIONS = ("raw", "hourly")
POWER_FIELDS = ("current", "voltage", "power", "energy", "frequency", "pf")


def validate_window(start: datetime, end: datetime, aggregation: str) -> None:
    if start > end:
        raise ValueError("startDate must not be after endDate")
    if aggregation not in AGGREGATIONS:
        raise ValueError(f"aggregation must be one of: {', '.join(AGGREGATIONS)}")


def _time_bucket(db: Session, column, aggregation: str):
    """Exact timestamp for raw data, start of the hour otherwise"""
    if aggregation == "raw":
        return column
    if db.get_bind().dialect.name == "sqlite":
        return func.strftime("%Y-%m-%d %H:00:00", column)
    return func.date_trunc("hour", column)


def _bucket_value(value: Any) -> datetime:
    # SQLite hands back strftime() buckets as text
    if isinstance(value, datetime):
        return value.replace(tzinfo=None) if value.tzinfo else value
    return parse_timestamp(value)


def _power_by_bucket(db: Session, start: datetime, end: datetime, aggregation: str) -> Dict[datetime, Dict[str, Any]]:
    combine = func.max if aggregation == "raw" else func.avg
    bucket = _time_bucket(db, PowerReading.timestamp, aggregation).label("bucket")
    rows = (
        db.query(
            bucket,
            combine(PowerReading.power).label("power"),
            combine(PowerReading.energy).label("energy"),
        )
        .filter(PowerReading.timestamp >= start, PowerReading.timestamp <= end)
        .group_by(bucket)
        .all()
    )
    return {_bucket_value(row.bucket): {"power": row.power, "energy": row.energy} for row in rows}


def get_historical_room_data(
    db: Session,
    start: datetime,
    end: datetime,
    room_ids: Optional[Sequence[str]] = None,
    aggregation: str = "raw",
) -> List[Dict[str, Any]]:
    """
    Room sensor history between start and end (inclusive).

    Raw mode yields one row per (timestamp, room) holding the maximum of each
    category at that instant; hourly mode yields one row per (hour, room)
    holding the average of each category within the hour. Motion comes out
    as a number (0/1 raw, share of readings with motion hourly). Power and
    energy are taken from the whole-home meter readings in the same bucket.
    """
    validate_window(start, end, aggregation)

    combine = func.max if aggregation == "raw" else func.avg
    bucket = _time_bucket(db, RoomSensorReading.timestamp, aggregation).label("bucket")

    query = (
        db.query(
            bucket,
            RoomSensorReading.room_id.label("room_id"),
            Room.name.label("room_name"),
            combine(RoomSensorReading.temperature).label("temperature"),
            combine(RoomSensorReading.humidity).label("humidity"),
            combine(RoomSensorReading.light).label("light"),
            combine(cast(RoomSensorReading.motion, Integer)).label("motion"),
        )
        .join(Room, Room.id == RoomSensorReading.room_id)
        .filter(RoomSensorReading.timestamp >= start, RoomSensorReading.timestamp <= end)
    )
    if room_ids:
        query = query.filter(RoomSensorReading.room_id.in_(list(room_ids)))

    rows = (
        query.group_by(bucket, RoomSensorReading.room_id, Room.name)
        .order_by(bucket, RoomSensorReading.room_id)
        .all()
    )

    logger.info(
        f"Fetched {len(rows)} room sensor rows "
        f"({aggregation}, {start.isoformat()} - {end.isoformat()}, rooms={list(room_ids) if room_ids else 'all'})"
    )
    if not rows:
        return []

    power = _power_by_bucket(db, start, end, aggregation)
    result = []
    for row in rows:
        timestamp = _bucket_value(row.bucket)
        meter = power.get(timestamp, {})
        result.append({
            "timestamp": timestamp,
            "room_id": row.room_id,
            "room_name": row.room_name,
            "temperature": row.temperature,
            "humidity": row.humidity,
            "light": row.light,
            "motion": row.motion,
            "power": meter.get("power"),
            "energy": meter.get("energy"),
        })
    return result


def get_historical_power_data(
    db: Session,
    start: datetime,
    end: datetime,
    aggregation: str = "raw",
) -> List[Dict[str, Any]]:
    """PZEM meter history, raw (max per timestamp) or hourly averages"""
    validate_window(start, end, aggregation)

    combine = func.max if aggregation == "raw" else func.avg
    bucket = _time_bucket(db, PowerReading.timestamp, aggregation).label("bucket")
    columns = [combine(getattr(PowerReading, field)).label(field) for field in POWER_FIELDS]

    rows = (
        db.query(bucket, *columns)
        .filter(PowerReading.timestamp >= start, PowerReading.timestamp <= end)
        .group_by(bucket)
        .order_by(bucket)
        .all()
    )
    logger.info(f"Fetched {len(rows)} power rows ({aggregation}, {start.isoformat()} - {end.isoformat()})")

    return [
        {"timestamp": _bucket_value(row.bucket), **{field: getattr(row, field) for field in POWER_FIELDS}}
        for row in rows
    ]
