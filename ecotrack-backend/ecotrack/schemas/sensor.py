from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional

from .common import UtcDatetime

class RoomSensorReadingResponse(BaseModel):
    id: int
    room_id: str
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    light: Optional[float] = None
    motion: Optional[bool] = None
    timestamp: UtcDatetime

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

class PowerReadingResponse(BaseModel):
    timestamp: UtcDatetime
    current: float = 0.0
    voltage: float = 0.0
    power: float = 0.0
    energy: float = 0.0
    frequency: float = 0.0
    pf: float = 0.0

    @field_validator("current", "voltage", "power", "energy", "frequency", "pf", mode="before")
    @classmethod
    def zero_fill(cls, value):
        return 0.0 if value is None else value

    model_config = ConfigDict(from_attributes=True)

class HistoricalDataPoint(BaseModel):
    """One room row of the history chart, raw or hourly"""
    timestamp: UtcDatetime
    room_id: str
    room_name: str
    temperature: float = 0.0
    humidity: float = 0.0
    light: float = 0.0
    motion: float = 0.0
    power: float = 0.0
    energy: float = 0.0

    @field_validator("temperature", "humidity", "light", "motion", "power", "energy", mode="before")
    @classmethod
    def zero_fill(cls, value):
        return 0.0 if value is None else value

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
