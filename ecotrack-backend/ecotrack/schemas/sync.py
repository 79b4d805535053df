from pydantic import BaseModel, Field
from typing import List, Optional

from ecotrack.database import get_utc_datetime
from .common import UtcDatetime

class SyncResult(BaseModel):
    success: bool
    synced: List[str] = []
    count: int = 0
    failed: List[str] = []
    skipped: bool = False
    database_unavailable: bool = Field(default=False, exclude=True)
    realtime_unavailable: bool = Field(default=False, exclude=True)
    error: Optional[str] = None
    timestamp: UtcDatetime = Field(default_factory=get_utc_datetime)

class RelaySyncResult(BaseModel):
    success: bool
    synced: List[str] = []
    count: int = 0
    failed: List[str] = []
    relays_count: int = Field(default=0, serialization_alias="relaysCount")
