from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from typing import Optional
import logging

from ecotrack import crud
from ecotrack.database import get_db, settings
from ecotrack.dependencies import get_firebase_provider, require_api_key
from ecotrack.errors import RelayHistoryError
from ecotrack.providers.firebase_provider import FirebaseProvider
from ecotrack.responses import error_response, list_response
from ecotrack.routers.events import publish_event
from ecotrack.schemas.relay import RelayControlRequest, RelayStateResponse
from ecotrack.services.relay_control import apply_relay_command, sync_relay_states

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["relays"])

def _relay_json(relay) -> dict:
    return RelayStateResponse.model_validate(relay).model_dump(by_alias=True, mode="json")

@router.post("/relay-control")
async def relay_control(
    request: Request,
    command: RelayControlRequest,
    db: Session = Depends(get_db),
    provider: FirebaseProvider = Depends(get_firebase_provider),
):
    """Switch a relay on/off and record the new state"""
    try:
        relay = await apply_relay_command(
            db, provider, command.relay_id, command.room_id, command.type, command.state
        )
    except RelayHistoryError as e:
        status_code = 503 if e.is_connectivity_error else 500
        return error_response(
            request.method,
            status_code,
            "Relay switched but its state could not be recorded",
            {"liveApplied": True, "relayId": e.relay_id, "state": e.state},
        )

    relay_data = _relay_json(relay)
    publish_event({"type": "relay", "source": "command", **relay_data})
    return {
        "success": True,
        "message": f"Relay {command.relay_id} turned {'on' if command.state else 'off'}",
        "relay": relay_data,
    }

@router.get("/relay-states")
def relay_states(
    relay_id: Optional[str] = Query(default=None, alias="relayId"),
    room_id: Optional[str] = Query(default=None, alias="roomId"),
    db: Session = Depends(get_db),
):
    """Relay states by id, by room, or all of them"""
    crud.check_connection(db)
    if relay_id:
        relay = crud.get_relay_state(db, relay_id)
        relays = [relay] if relay else []
    elif room_id:
        relays = crud.get_room_relay_states(db, room_id)
    else:
        relays = crud.get_all_relay_states(db)

    return list_response([_relay_json(relay) for relay in relays])

@router.post("/relay-sync", dependencies=[Depends(require_api_key)])
async def relay_sync(
    db: Session = Depends(get_db),
    provider: FirebaseProvider = Depends(get_firebase_provider),
):
    """Pull the live relay states from Firebase into the database"""
    result = await sync_relay_states(db, provider, settings.relay_sources)
    logger.info(f"Relay sync: {result.count}/{len(settings.relay_sources)} relays stored")
    return result.model_dump(by_alias=True)
