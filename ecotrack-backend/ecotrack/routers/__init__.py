from .health import router as health_router
from .rooms import router as rooms_router
from .sensors import router as sensors_router
from .relays import router as relays_router
from .sync import router as sync_router
from .maintenance import router as maintenance_router
from .events import router as events_router

__all__ = [
    "health_router",
    "rooms_router",
    "sensors_router",
    "relays_router",
    "sync_router",
    "maintenance_router",
    "events_router"
]
