from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ecotrack.database import Base

class RelayState(Base):
    __tablename__ = "relay_states"
    
    id = Column(String(100), primary_key=True)  # "<room_id>_<relay_type>"
    room_id = Column(String(50), ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    relay_type = Column(String(50), nullable=False)  # "light", "fan", "ac"
    state = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime, server_default=func.now())
    
    room = relationship("Room", back_populates="relays")
