from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional

from .common import UtcDatetime

class RoomResponse(BaseModel):
    id: str
    name: str
    floor: Optional[int] = None
    type: Optional[str] = None
    updated_at: Optional[UtcDatetime] = None

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)
