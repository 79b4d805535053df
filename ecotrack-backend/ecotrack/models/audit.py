from sqlalchemy import Column, Integer, String, JSON, DateTime
from ecotrack.database import Base, get_utc_datetime

class AuditLog(Base):
    __tablename__ = "audit_logs"
    
    id = Column(Integer, primary_key=True, index=True)
    action = Column(String(50), nullable=False, index=True)  # "relay_command", "relay_sync", "retention_cleanup"
    details = Column(JSON, default=dict)
    created_at = Column(DateTime, default=get_utc_datetime)
