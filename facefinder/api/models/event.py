"""API specific event models."""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


class EventCreateRequest(BaseModel):
    """Request model for creating an event."""
    name: str = Field(..., description="Display name of the event", min_length=1, max_length=200)
    code: str = Field(
        ...,
        description="Access code attendees use to find the event (case-insensitive)",
        min_length=3, max_length=32, pattern="^[a-zA-Z0-9_-]+$"
    )
    description: Optional[str] = Field(None, max_length=2000)
    is_active: bool = True


class EventUpdateRequest(BaseModel):
    """Request model for updating an event. Omitted fields are left unchanged."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    is_active: Optional[bool] = None

    @model_validator(mode="after")
    def check_not_null(self) -> "EventUpdateRequest":
        # only the description may be cleared
        for field in ("name", "is_active"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


class EventResponse(BaseModel):
    """Response model for an event."""
    id: UUID
    name: str
    code: str = Field(..., description="Upper-case access code")
    description: Optional[str] = None
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
