"""
Database initialization script
Creates the tables and the default room catalog
"""
import logging

from ecotrack.database import SessionLocal, engine, settings, get_utc_datetime
from ecotrack.models import Base
from ecotrack.models.room import Room

logger = logging.getLogger(__name__)

UNKNOWN_ROOM = {"id": "unknown", "name": "Unknown", "floor": 0, "type": "utility"}

def init_database(bind=None, session_factory=None):
    """Create tables and seed missing rooms; existing rows are left untouched"""
    
    Base.metadata.create_all(bind=bind or engine)
    
    db = (session_factory or SessionLocal)()
    try:
        defaults = [UNKNOWN_ROOM] + [
            {"id": room.id, "name": room.name, "floor": room.floor, "type": room.type}
            for room in settings.room_sources
        ]
        created = []
        for values in defaults:
            if db.get(Room, values["id"]) is None:
                db.add(Room(updated_at=get_utc_datetime(), **values))
                created.append(values["id"])
        
        db.commit()
        if created:
            logger.info(f"Created rooms: {', '.join(created)}")
        else:
            logger.info("Database already initialized")
        
    except Exception as e:
        db.rollback()
        logger.error(f"Error initializing database: {e}")
        raise
    finally:
        db.close()

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_database()
