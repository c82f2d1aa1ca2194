from datetime import datetime, timezone
from enum import StrEnum

from pydantic import BaseModel, Field


class HistoryType(StrEnum):
    URL = "URL"
    HTML = "HTML"
    BULK = "BULK"


class HistoryEntry(BaseModel):
    id: str
    type: HistoryType
    details: str
    propertyCount: int = 0
    date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
