from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ecotrack.database import Base

class Room(Base):
    __tablename__ = "rooms"
    
    id = Column(String(50), primary_key=True, index=True)  # "bedroom", "living_room"
    name = Column(String(255), nullable=False)  # "Bedroom", "Living Room"
    floor = Column(Integer, default=1)
    type = Column(String(100), default="residential")  # "residential", "utility"
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now())
    
    readings = relationship("RoomSensorReading", back_populates="room", passive_deletes=True)
    relays = relationship("RelayState", back_populates="room", passive_deletes=True)
