"""
Relay commands: live write to Firebase, then the relational record
"""
import logging
from typing import List, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ecotrack import crud
from ecotrack.database import RelaySource
from ecotrack.errors import RealtimeStoreError, RelayHistoryError
from ecotrack.models import RelayState
from ecotrack.providers.firebase_provider import FirebaseProvider
from ecotrack.schemas.sync import RelaySyncResult

logger = logging.getLogger(__name__)


async def apply_relay_command(
    db: Session,
    provider: FirebaseProvider,
    relay_id: str,
    room_id: str,
    relay_type: str,
    state: bool,
) -> RelayState:
    """
    Switch a relay and record its new state.

    The two writes are not transactional. If the realtime write succeeds and
    the relational write fails, the device is already switched: the error is
    raised as RelayHistoryError and nothing is retried.
    """
    crud.check_connection(db)

    await provider.set_relay_state(relay_id, state)
    logger.info(f"Relay {relay_id} set to {'ON' if state else 'OFF'}")

    try:
        crud.ensure_room(db, room_id)
        crud.upsert_relay_state(db, relay_id, room_id, relay_type, state)
        crud.record_audit(db, "relay_command", {"relay_id": relay_id, "room_id": room_id, "state": state})
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Relay {relay_id} drift: live state {state} applied but not recorded: {e}")
        raise RelayHistoryError(relay_id, state, e) from e

    return crud.get_relay_state(db, relay_id)


async def sync_relay_states(db: Session, provider: FirebaseProvider, relays: Sequence[RelaySource]) -> RelaySyncResult:
    """Pull the live state of each relay into relay_states; unreadable relays are skipped"""
    crud.check_connection(db)

    synced: List[str] = []
    failed: List[str] = []
    for relay in relays:
        try:
            state = await provider.get_relay_state(relay.id)
        except RealtimeStoreError as e:
            logger.warning(f"Failed to read relay {relay.id}: {e}")
            failed.append(relay.id)
            continue
        if state is None:
            continue

        crud.ensure_room(db, relay.room_id)
        crud.upsert_relay_state(db, relay.id, relay.room_id, relay.relay_type, state)
        synced.append(relay.id)

    if synced:
        crud.record_audit(db, "relay_sync", {"synced": synced, "failed": failed})
    db.commit()

    return RelaySyncResult(
        success=True,
        synced=synced,
        count=len(synced),
        failed=failed,
        relays_count=len(relays),
    )
