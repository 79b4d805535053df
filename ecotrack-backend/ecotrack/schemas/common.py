from datetime import datetime
from typing import Annotated

from pydantic import PlainSerializer

from ecotrack.database import isoformat_utc

# Naive UTC datetimes rendered as "2026-01-18T09:00:00.000Z"
UtcDatetime = Annotated[datetime, PlainSerializer(isoformat_utc, return_type=str)]
