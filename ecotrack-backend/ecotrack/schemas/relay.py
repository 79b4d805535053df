from pydantic import BaseModel, ConfigDict, Field, StrictBool, model_validator
from pydantic.alias_generators import to_camel
from typing import Optional

from ecotrack.database import relay_id_for
from .common import UtcDatetime

class RelayStateResponse(BaseModel):
    id: str
    room_id: str
    relay_type: str = Field(serialization_alias="type")
    state: bool
    updated_at: Optional[UtcDatetime] = None

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

class RelayControlRequest(BaseModel):
    relay_id: str = Field(alias="relayId", min_length=1, max_length=100)
    room_id: str = Field(alias="roomId", min_length=1, max_length=50)
    type: str = Field(min_length=1, max_length=50)
    state: StrictBool

    @model_validator(mode="after")
    def relay_id_matches_room_and_type(self):
        expected = relay_id_for(self.room_id, self.type)
        if self.relay_id != expected:
            raise ValueError(f"relayId must be '{expected}' for room '{self.room_id}' and type '{self.type}'")
        return self

    model_config = ConfigDict(populate_by_name=True)
