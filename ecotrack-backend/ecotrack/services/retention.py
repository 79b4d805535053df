"""
Retention cleanup for the append-only reading tables
"""
import logging
from datetime import timedelta
from typing import Dict

from sqlalchemy.orm import Session

from ecotrack import crud
from ecotrack.database import get_utc_datetime
from ecotrack.models import PowerReading, RoomSensorReading

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 90


def cleanup_old_data(db: Session, days: int = DEFAULT_RETENTION_DAYS) -> Dict[str, int]:
    """Delete readings older than `days` days; returns the number of rows removed per table"""
    days = max(1, int(days))
    cutoff = get_utc_datetime() - timedelta(days=days)

    try:
        room_deleted = (
            db.query(RoomSensorReading)
            .filter(RoomSensorReading.timestamp < cutoff)
            .delete(synchronize_session=False)
        )
        power_deleted = (
            db.query(PowerReading)
            .filter(PowerReading.timestamp < cutoff)
            .delete(synchronize_session=False)
        )
        deleted = {
            "room_sensors": room_deleted,
            "pzem_data": power_deleted,
            "total": room_deleted + power_deleted,
        }
        crud.record_audit(db, "retention_cleanup", {"days": days, "cutoff": cutoff.isoformat(), **deleted})
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Retention cleanup ({days} days): deleted {deleted['total']} rows")
    return deleted
