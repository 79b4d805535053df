from .room import RoomResponse
from .sensor import RoomSensorReadingResponse, PowerReadingResponse, HistoricalDataPoint
from .relay import RelayStateResponse, RelayControlRequest
from .sync import SyncResult, RelaySyncResult

__all__ = [
    "RoomResponse",
    "RoomSensorReadingResponse",
    "PowerReadingResponse",
    "HistoricalDataPoint",
    "RelayStateResponse",
    "RelayControlRequest",
    "SyncResult",
    "RelaySyncResult"
]
