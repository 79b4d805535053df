from sqlalchemy import Column, Integer, String, DateTime, Float, Boolean, ForeignKey, Index
from sqlalchemy.orm import relationship
from ecotrack.database import Base

class RoomSensorReading(Base):
    __tablename__ = "room_sensors"
    
    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(String(50), ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False)
    temperature = Column(Float)  # °C
    humidity = Column(Float)  # %
    light = Column(Float)  # lux
    motion = Column(Boolean)
    timestamp = Column(DateTime, nullable=False, index=True)  # naive UTC
    
    room = relationship("Room", back_populates="readings")

    __table_args__ = (
        Index("idx_room_sensors_room_timestamp", "room_id", "timestamp"),
    )

class PowerReading(Base):
    """Whole-home PZEM meter sample"""
    __tablename__ = "pzem_data"
    
    id = Column(Integer, primary_key=True, index=True)
    current = Column(Float)  # A
    voltage = Column(Float)  # V
    power = Column(Float)  # W
    energy = Column(Float)  # kWh, cumulative
    frequency = Column(Float)  # Hz
    pf = Column(Float)  # power factor
    timestamp = Column(DateTime, nullable=False, index=True)
