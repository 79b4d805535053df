from ecotrack.database import Base
from .room import Room
from .sensor import RoomSensorReading, PowerReading
from .relay import RelayState
from .audit import AuditLog

__all__ = [
    "Base",
    "Room",
    "RoomSensorReading",
    "PowerReading",
    "RelayState",
    "AuditLog"
]
