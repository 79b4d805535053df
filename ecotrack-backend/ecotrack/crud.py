"""
Relational store helpers shared by the routers and the sync/relay services
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import insert, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ecotrack.database import get_utc_datetime
from ecotrack.errors import DatabaseUnavailableError, is_connectivity_error
from ecotrack.models import AuditLog, PowerReading, RelayState, Room, RoomSensorReading

logger = logging.getLogger(__name__)

ROOM_READING_FIELDS = ("room_id", "temperature", "humidity", "light", "motion", "timestamp")
POWER_READING_FIELDS = ("current", "voltage", "power", "energy", "frequency", "pf", "timestamp")


def check_connection(db: Session) -> None:
    """Raise DatabaseUnavailableError unless a trivial query goes through."""
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        db.rollback()
        if is_connectivity_error(e):
            logger.error(f"Database connection check failed: {e}")
            raise DatabaseUnavailableError() from e
        raise


def is_connected(db: Session) -> bool:
    try:
        check_connection(db)
        return True
    except (DatabaseUnavailableError, SQLAlchemyError):
        return False


def _upsert(db: Session, model, values: Dict[str, Any], update_fields: Iterable[str]) -> None:
    """INSERT ... ON CONFLICT (id) DO UPDATE, falling back to an ORM merge"""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert as dialect_insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert as dialect_insert
    else:
        db.merge(model(**values))
        db.flush()
        return

    stmt = dialect_insert(model).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=["id"],
        set_={field: stmt.excluded[field] for field in update_fields},
    )
    db.execute(stmt)


# ---------- Rooms ----------
def upsert_room(db: Session, room_id: str, name: str, floor: int = 1, room_type: str = "residential") -> None:
    _upsert(
        db,
        Room,
        {"id": room_id, "name": name, "floor": floor, "type": room_type, "updated_at": get_utc_datetime()},
        ("name", "floor", "type", "updated_at"),
    )


def ensure_room(db: Session, room_id: str, name: Optional[str] = None) -> Room:
    """Create the room if it is missing, never touching an existing row"""
    room = db.get(Room, room_id)
    if room is None:
        room = Room(
            id=room_id,
            name=name or room_id.replace("_", " ").title(),
            updated_at=get_utc_datetime(),
        )
        db.add(room)
        db.flush()
    return room


def get_rooms(db: Session) -> List[Room]:
    return db.query(Room).order_by(Room.name).all()


# ---------- Readings ----------
def insert_room_readings(db: Session, records: List[Dict[str, Any]]) -> int:
    """Insert all records with a single multi-row INSERT"""
    if not records:
        return 0
    rows = [{field: record.get(field) for field in ROOM_READING_FIELDS} for record in records]
    for row in rows:
        row["timestamp"] = row["timestamp"] or get_utc_datetime()
    db.execute(insert(RoomSensorReading).values(rows))
    return len(rows)


def insert_power_readings(db: Session, records: List[Dict[str, Any]]) -> int:
    if not records:
        return 0
    rows = [{field: record.get(field) for field in POWER_READING_FIELDS} for record in records]
    for row in rows:
        row["timestamp"] = row["timestamp"] or get_utc_datetime()
    db.execute(insert(PowerReading).values(rows))
    return len(rows)


def get_latest_room_readings(db: Session, room_id: Optional[str] = None, limit: int = 5) -> List[RoomSensorReading]:
    query = db.query(RoomSensorReading)
    if room_id:
        query = query.filter(RoomSensorReading.room_id == room_id)
    return query.order_by(RoomSensorReading.timestamp.desc()).limit(limit).all()


def get_latest_power_reading(db: Session) -> Optional[PowerReading]:
    return db.query(PowerReading).order_by(PowerReading.timestamp.desc()).first()


def count_room_readings(db: Session) -> int:
    return db.query(RoomSensorReading).count()


def count_power_readings(db: Session) -> int:
    return db.query(PowerReading).count()


# ---------- Relays ----------
def upsert_relay_state(db: Session, relay_id: str, room_id: str, relay_type: str, state: bool) -> None:
    _upsert(
        db,
        RelayState,
        {
            "id": relay_id,
            "room_id": room_id,
            "relay_type": relay_type,
            "state": state,
            "updated_at": get_utc_datetime(),
        },
        ("state", "updated_at"),
    )


def get_relay_state(db: Session, relay_id: str) -> Optional[RelayState]:
    return db.get(RelayState, relay_id)


def get_room_relay_states(db: Session, room_id: str) -> List[RelayState]:
    return (
        db.query(RelayState)
        .filter(RelayState.room_id == room_id)
        .order_by(RelayState.updated_at.desc())
        .all()
    )


def get_all_relay_states(db: Session) -> List[RelayState]:
    return db.query(RelayState).order_by(RelayState.updated_at.desc()).all()


# ---------- Audit ----------
def record_audit(db: Session, action: str, details: Dict[str, Any]) -> None:
    db.add(AuditLog(action=action, details=details, created_at=get_utc_datetime()))
