"""
Shared service instances and FastAPI dependencies
"""
import secrets
from typing import Optional

from fastapi import Header, HTTPException

from ecotrack.database import SessionLocal, settings
from ecotrack.providers.firebase_provider import FirebaseProvider
from ecotrack.services.sync import SyncService

_firebase_provider: Optional[FirebaseProvider] = None
_sync_service: Optional[SyncService] = None


def get_firebase_provider() -> FirebaseProvider:
    """Get the process-wide Firebase provider, created on first use"""
    global _firebase_provider
    if _firebase_provider is None:
        _firebase_provider = FirebaseProvider(
            settings.firebase_database_url, settings.firebase_credentials
        )
    return _firebase_provider


def get_sync_service() -> SyncService:
    """The one SyncService whose guard both the scheduler and the API share"""
    global _sync_service
    if _sync_service is None:
        _sync_service = SyncService(
            SessionLocal,
            get_firebase_provider(),
            settings.room_sources,
            settings.power_meter_key,
        )
    return _sync_service


def close_services() -> None:
    global _firebase_provider, _sync_service
    if _firebase_provider is not None:
        _firebase_provider.close()
    _firebase_provider = None
    _sync_service = None


def require_api_key(x_api_key: Optional[str] = Header(default=None)) -> None:
    """Guard for mutating maintenance endpoints; open when SYNC_API_KEY is unset"""
    expected = settings.sync_api_key
    if not expected:
        return
    if not x_api_key or not secrets.compare_digest(x_api_key.encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="Unauthorized")
