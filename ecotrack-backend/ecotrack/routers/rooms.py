from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ecotrack import crud
from ecotrack.database import get_db
from ecotrack.responses import list_response
from ecotrack.schemas.room import RoomResponse

router = APIRouter(prefix="/api/rooms", tags=["rooms"])

@router.get("")
def list_rooms(db: Session = Depends(get_db)):
    """Get all rooms"""
    crud.check_connection(db)
    rooms = crud.get_rooms(db)
    data = [RoomResponse.model_validate(room).model_dump(by_alias=True, mode="json") for room in rooms]
    return list_response(data)
