"""SQLAlchemy models for the face finder service."""
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PhotoStatus:
    """Lifecycle states of an uploaded photo."""
    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class Event(Base):
    """Event grouping the photos attendees can search."""

    __tablename__ = "events"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        comment="Access code attendees use to find the event (upper-case)"
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    # Relationships
    photos: Mapped[List["Photo"]] = relationship(
        back_populates="event",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Photo(Base):
    """Uploaded event photo and its ingestion state."""

    __tablename__ = "photos"
    __table_args__ = (
        Index("idx_photos_event_processed", "event_id", "processed"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
    )
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    storage_path: Mapped[str] = mapped_column(
        String(1024),
        nullable=False,
        comment="Location of the stored image file"
    )
    status: Mapped[str] = mapped_column(String(16), default=PhotoStatus.PENDING, nullable=False)
    processed: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        comment="True once the photo's faces are recorded; only processed photos are searched"
    )
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    event: Mapped[Event] = relationship(back_populates="photos")
    faces: Mapped[List["Face"]] = relationship(
        back_populates="photo",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Face(Base):
    """Detected face and its embedding."""

    __tablename__ = "faces"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    photo_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("photos.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    embedding: Mapped[List[float]] = mapped_column(
        JSON,
        nullable=False,
        comment="Face embedding vector as a JSON array"
    )
    dimension: Mapped[int] = mapped_column(Integer, nullable=False)
    confidence: Mapped[float] = mapped_column(
        Float,
        comment="Face detection confidence score (0-1)"
    )
    bbox_x: Mapped[float] = mapped_column(Float)
    bbox_y: Mapped[float] = mapped_column(Float)
    bbox_width: Mapped[float] = mapped_column(Float)
    bbox_height: Mapped[float] = mapped_column(Float)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    # Relationships
    photo: Mapped[Photo] = relationship(back_populates="faces")


class PhotoMatch(Base):
    """Accepted match between a requester's selfie and an event photo."""

    __tablename__ = "photo_matches"
    __table_args__ = (
        Index("idx_photo_matches_requester_photo", "requester_id", "photo_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    requester_id: Mapped[str] = mapped_column(String(255), nullable=False)
    photo_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("photos.id", ondelete="CASCADE"),
        nullable=False,
    )
    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    confidence: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Match confidence (0-100)"
    )
    selfie_ref: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    notification_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
