# ecotrack/routers/sensors.py
from datetime import datetime, timedelta
from typing import Optional, List, Tuple
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ecotrack import crud
from ecotrack.database import get_db, get_utc_datetime, isoformat_utc, settings
from ecotrack.responses import list_response, live_response
from ecotrack.schemas.sensor import HistoricalDataPoint, PowerReadingResponse
from ecotrack.services.history import get_historical_power_data, get_historical_room_data, validate_window
from ecotrack.timestamps import parse_timestamp

router = APIRouter(prefix="/api", tags=["sensors"])

# ---------- Helpers: query parameter parsing ----------
def _parse_window(
    start_raw: Optional[str], end_raw: Optional[str], aggregation: str, default_window: Optional[timedelta] = None
) -> Tuple[datetime, datetime]:
    """Parse and check a query window; without `default_window` both ends are required"""
    if default_window is None and not (start_raw and end_raw):
        raise HTTPException(status_code=400, detail="Missing required parameters: startDate and endDate")
    try:
        end = parse_timestamp(end_raw) if end_raw else get_utc_datetime()
        start = parse_timestamp(start_raw) if start_raw else end - default_window
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date format")
    try:
        validate_window(start, end, aggregation)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return start, end

def _parse_room_ids(raw: Optional[str]) -> Optional[List[str]]:
    if not raw:
        return None
    room_ids = [room_id.strip() for room_id in raw.split(",") if room_id.strip()]
    return room_ids or None

def _tail(rows: list, limit: Optional[int]) -> list:
    # keep the most recent rows, still in ascending order
    return rows[-limit:] if limit else rows

# ---------- Room sensor history ----------
@router.get("/historical-data")
def historical_data(
    start_date: Optional[str] = Query(default=None, alias="startDate"),
    end_date: Optional[str] = Query(default=None, alias="endDate"),
    room_ids: Optional[str] = Query(default=None, alias="roomIds"),
    aggregation: str = Query(default="raw"),
    limit: Optional[int] = Query(default=None, ge=1, le=50000),
    db: Session = Depends(get_db),
):
    start, end = _parse_window(start_date, end_date, aggregation)
    rooms = _parse_room_ids(room_ids)

    crud.check_connection(db)
    rows = _tail(get_historical_room_data(db, start, end, rooms, aggregation), limit)
    data = [HistoricalDataPoint(**row).model_dump(by_alias=True, mode="json") for row in rows]

    return list_response(
        data,
        startDate=isoformat_utc(start),
        endDate=isoformat_utc(end),
        roomIds=rooms or "all",
        aggregation=aggregation,
    )

# ---------- PZEM power meter ----------
@router.get("/pzem-data")
def pzem_data(
    start_date: Optional[str] = Query(default=None, alias="startDate"),
    end_date: Optional[str] = Query(default=None, alias="endDate"),
    aggregation: str = Query(default="raw"),
    limit: Optional[int] = Query(default=None, ge=1, le=50000),
    db: Session = Depends(get_db),
):
    """Power meter history; defaults to the whole retention window"""
    start, end = _parse_window(start_date, end_date, aggregation, timedelta(days=settings.retention_days))

    crud.check_connection(db)
    rows = _tail(get_historical_power_data(db, start, end, aggregation), limit)
    data = [PowerReadingResponse(**row).model_dump(mode="json") for row in rows]
    return list_response(data)

@router.get("/pzem-data/latest")
def latest_pzem(db: Session = Depends(get_db)):
    crud.check_connection(db)
    latest = crud.get_latest_power_reading(db)
    if latest is None:
        return live_response({"success": True, "data": None, "message": "No data available"})
    return live_response({
        "success": True,
        "data": PowerReadingResponse.model_validate(latest).model_dump(mode="json"),
    })
