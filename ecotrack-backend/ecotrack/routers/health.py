from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ecotrack import crud
from ecotrack.database import get_db, get_utc_datetime, isoformat_utc

router = APIRouter(tags=["health"])

@router.get("/healthz")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok", "service": "ecotrack-api"}

@router.get("/api/health")
async def api_health_check():
    """API health check endpoint"""
    return {"status": "ok", "api_version": "v1"}

@router.get("/api/sync-firebase")
def sync_health(db: Session = Depends(get_db)):
    """Lets cron jobs check the database before triggering a sync"""
    connected = crud.is_connected(db)
    return {
        "status": "ok",
        "database": "connected" if connected else "disconnected",
        "timestamp": isoformat_utc(get_utc_datetime()),
    }
