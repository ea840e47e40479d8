from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from engine.models import Event


class EventRequest(BaseModel):
    type: str = Field(min_length=1)
    fields: Dict[str, Any] = Field(default_factory=dict)
    origin_key: Optional[str] = None
    timestamp: Optional[float] = None

    def to_event(self) -> Event:
        return Event.from_fields(
            self.type,
            self.fields,
            origin_key=self.origin_key,
            arrival_timestamp=self.timestamp,
        )


class EventBatchRequest(BaseModel):
    events: List[EventRequest] = Field(min_length=1)
