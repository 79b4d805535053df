"""
Firebase -> relational sync tick
"""
import asyncio
import logging
import threading
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ecotrack import crud
from ecotrack.database import RoomSource, get_utc_datetime
from ecotrack.errors import DatabaseUnavailableError, is_connectivity_error
from ecotrack.providers.firebase_provider import FirebaseProvider
from ecotrack.schemas.sync import SyncResult
from ecotrack.timestamps import parse_optional_timestamp

logger = logging.getLogger(__name__)

POWER_SOURCE = "pzem_data"


def room_source_name(room_id: str) -> str:
    return f"{room_id}_sensor"


def _number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def build_room_reading(room_id: str, snapshot: Dict[str, Any], received_at: Optional[datetime] = None) -> Dict[str, Any]:
    """Map a realtime room snapshot onto a room_sensors row; `received_at` stands in for a missing updatedAt"""
    motion = snapshot.get("motion")
    return {
        "room_id": room_id,
        "temperature": _number(snapshot.get("temperature")),
        "humidity": _number(snapshot.get("humidity")),
        "light": _number(snapshot.get("light")),
        "motion": None if motion is None else bool(motion),
        "timestamp": parse_optional_timestamp(snapshot.get("updatedAt"), received_at),
    }


def build_power_reading(snapshot: Dict[str, Any], received_at: Optional[datetime] = None) -> Dict[str, Any]:
    return {
        "current": _number(snapshot.get("current")),
        "voltage": _number(snapshot.get("voltage")),
        "power": _number(snapshot.get("power")),
        "energy": _number(snapshot.get("energy")),
        "frequency": _number(snapshot.get("frequency")),
        "pf": _number(snapshot.get("pf")),
        "timestamp": parse_optional_timestamp(snapshot.get("updatedAt"), received_at),
    }


class SyncService:
    """Copies the current realtime snapshot of every configured source into the relational store"""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        provider: FirebaseProvider,
        rooms: Sequence[RoomSource],
        power_meter_key: str = "pzem",
    ):
        self.session_factory = session_factory
        self.provider = provider
        self.rooms = list(rooms)
        self.power_meter_key = power_meter_key
        self._guard = threading.Lock()
        self.last_result: Optional[SyncResult] = None

    @property
    def is_running(self) -> bool:
        return self._guard.locked()

    async def run_tick(self) -> SyncResult:
        """Run one tick; a tick that starts while another is in flight is skipped"""
        if not self._guard.acquire(blocking=False):
            logger.info("Sync already in progress, skipping tick")
            return SyncResult(success=False, skipped=True, error="Sync already in progress")

        try:
            result = await self._run()
        finally:
            self._guard.release()

        self.last_result = result
        return result

    async def _read_sources(self) -> List[Any]:
        reads = [self.provider.get_room_snapshot(room.id) for room in self.rooms]
        reads.append(self.provider.get_power_snapshot(self.power_meter_key))
        return await asyncio.gather(*reads, return_exceptions=True)

    async def _run(self) -> SyncResult:
        db = self.session_factory()
        try:
            crud.check_connection(db)

            snapshots = await self._read_sources()
            # shared timestamp for every snapshot without its own updatedAt
            tick_time = get_utc_datetime()
            synced: List[str] = []
            failed: List[str] = []
            room_rows: List[Dict[str, Any]] = []
            power_rows: List[Dict[str, Any]] = []

            for room, snapshot in zip(self.rooms, snapshots):
                source = room_source_name(room.id)
                if isinstance(snapshot, Exception):
                    logger.warning(f"Skipping {source}: {snapshot}")
                    failed.append(source)
                    continue
                if snapshot is None:
                    logger.debug(f"No realtime data for {source}")
                    continue
                try:
                    row = build_room_reading(room.id, snapshot, tick_time)
                except ValueError as e:
                    logger.warning(f"Skipping {source}: {e}")
                    failed.append(source)
                    continue

                crud.upsert_room(db, room.id, room.name, room.floor, room.type)
                room_rows.append(row)
                synced.append(source)

            power_snapshot = snapshots[-1]
            if isinstance(power_snapshot, Exception):
                logger.warning(f"Skipping {POWER_SOURCE}: {power_snapshot}")
                failed.append(POWER_SOURCE)
            elif power_snapshot is not None:
                try:
                    power_rows.append(build_power_reading(power_snapshot, tick_time))
                    synced.append(POWER_SOURCE)
                except ValueError as e:
                    logger.warning(f"Skipping {POWER_SOURCE}: {e}")
                    failed.append(POWER_SOURCE)

            if failed and not synced:
                db.rollback()
                logger.error(f"Sync tick failed: no source could be read ({', '.join(failed)})")
                return SyncResult(
                    success=False,
                    failed=failed,
                    realtime_unavailable=True,
                    error="Realtime database unavailable",
                )

            crud.insert_room_readings(db, room_rows)
            crud.insert_power_readings(db, power_rows)
            db.commit()

            logger.info(f"Sync tick stored {len(room_rows)} room and {len(power_rows)} power readings")
            return SyncResult(success=True, synced=synced, count=len(synced), failed=failed)

        except DatabaseUnavailableError as e:
            db.rollback()
            logger.error(f"Sync tick aborted: {e}")
            return SyncResult(success=False, database_unavailable=True, error=str(e))
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Sync tick rolled back: {e}")
            if is_connectivity_error(e):
                return SyncResult(success=False, database_unavailable=True, error="Database unavailable")
            return SyncResult(success=False, error="Failed to store synced data")
        finally:
            db.close()
