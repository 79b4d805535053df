from datetime import datetime, timezone
from typing import List, NamedTuple, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from pydantic_settings import BaseSettings, SettingsConfigDict
import os
from dotenv import load_dotenv

load_dotenv()


class RoomSource(NamedTuple):
    id: str
    name: str
    floor: int = 1
    type: str = "residential"


class RelaySource(NamedTuple):
    room_id: str
    relay_type: str

    @property
    def id(self) -> str:
        return relay_id_for(self.room_id, self.relay_type)


def relay_id_for(room_id: str, relay_type: str) -> str:
    """Relay ids are always "<room>_<type>", e.g. "bedroom_light"."""
    return f"{room_id}_{relay_type}"


class Settings(BaseSettings):
    database_url: str = os.getenv("DATABASE_URL") or os.getenv("POSTGRES_URL") or "sqlite:///./ecotrack.db"
    db_pool_size: int = int(os.getenv("DB_POOL_SIZE", "20"))
    db_pool_timeout: int = int(os.getenv("DB_POOL_TIMEOUT", "5"))

    sync_api_key: str = os.getenv("SYNC_API_KEY", "")

    firebase_database_url: str = os.getenv("FIREBASE_DATABASE_URL", "")
    firebase_credentials: str = os.getenv("FIREBASE_CREDENTIALS", "")

    sync_rooms: str = os.getenv("SYNC_ROOMS", "bedroom:Bedroom,living_room:Living Room")
    sync_relays: str = os.getenv("SYNC_RELAYS", "bedroom:light,living_room:light")
    power_meter_key: str = os.getenv("POWER_METER_KEY", "pzem")
    device_id: str = os.getenv("DEVICE_ID", "esp32-main")

    sync_scheduler_enabled: bool = os.getenv("SYNC_SCHEDULER_ENABLED", "true").lower() == "true"
    sync_interval_seconds: int = int(os.getenv("SYNC_INTERVAL_SECONDS", "60"))
    retention_days: int = int(os.getenv("RETENTION_DAYS", "90"))
    cleanup_interval_hours: int = int(os.getenv("CLEANUP_INTERVAL_HOURS", "24"))

    cors_origins: str = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    debug: bool = os.getenv("DEBUG", "false").lower() == "true"

    model_config = SettingsConfigDict(extra="ignore")

    @property
    def room_sources(self) -> List[RoomSource]:
        return parse_room_sources(self.sync_rooms)

    @property
    def relay_sources(self) -> List[RelaySource]:
        return parse_relay_sources(self.sync_relays)

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


def parse_room_sources(raw: str) -> List[RoomSource]:
    """Parse "id:Name[:floor[:type]]" entries separated by commas."""
    rooms = []
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        parts = [p.strip() for p in entry.split(":")]
        room_id = parts[0]
        name = parts[1] if len(parts) > 1 and parts[1] else room_id.replace("_", " ").title()
        floor = int(parts[2]) if len(parts) > 2 and parts[2] else 1
        room_type = parts[3] if len(parts) > 3 and parts[3] else "residential"
        rooms.append(RoomSource(room_id, name, floor, room_type))
    return rooms


def parse_relay_sources(raw: str) -> List[RelaySource]:
    relays = []
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        room_id, _, relay_type = entry.partition(":")
        relays.append(RelaySource(room_id.strip(), relay_type.strip() or "light"))
    return relays


settings = Settings()


def get_utc_datetime() -> datetime:
    """Current UTC time as a naive datetime, the format every table stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def isoformat_utc(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return to_utc_naive(value).isoformat(timespec="milliseconds") + "Z"


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": 0,
        "pool_timeout": settings.db_pool_timeout,
        "pool_pre_ping": True,
    }


engine = create_engine(settings.database_url, **_engine_kwargs(settings.database_url))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
