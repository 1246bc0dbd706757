"""API specific photo models."""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class PhotoResponse(BaseModel):
    """Response model for a photo and its indexing state."""
    id: UUID
    event_id: UUID
    filename: str
    status: str = Field(..., description="pending, processed or failed")
    processed: bool = Field(..., description="Whether the photo takes part in searches")
    attempts: int = Field(0, description="Indexing attempts made so far")
    last_error: Optional[str] = None
    faces_count: int = Field(0, description="Number of faces stored for the photo")
    created_at: datetime
    processed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PhotoUploadResponse(BaseModel):
    """Response model for a photo upload."""
    event_id: UUID
    photos: List[PhotoResponse] = Field(..., description="Photos queued for indexing")
