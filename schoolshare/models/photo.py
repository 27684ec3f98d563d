"""
Photo model for storing photo metadata, plus subject tagging.
Actual photo files live in object storage; only the storage path is kept here.
"""
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from schoolshare.database import Base
from schoolshare.utils.time import utcnow

if TYPE_CHECKING:
    from schoolshare.models.event import Event


class Photo(Base):
    """
    Photo metadata.
    Belongs to exactly one event and optionally to one folder of that event.
    """

    __tablename__ = "photos"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    folder_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("folders.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # File metadata
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    storage_path: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    file_size: Mapped[int] = mapped_column(Integer, default=0)
    width: Mapped[int] = mapped_column(Integer, default=0)
    height: Mapped[int] = mapped_column(Integer, default=0)

    # Only approved photos are visible through shares by default
    approved: Mapped[bool] = mapped_column(Boolean, default=True)
    photo_metadata: Mapped[Dict[str, Any]] = mapped_column("metadata", JSON, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    # Relationships
    event: Mapped["Event"] = relationship("Event", back_populates="photos")

    def __repr__(self) -> str:
        return f"<Photo(id={self.id}, filename={self.filename})>"


class Subject(Base):
    """A student, family or group photos can be tagged with."""

    __tablename__ = "subjects"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    subject_type: Mapped[str] = mapped_column(String(50), default="student")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    event: Mapped["Event"] = relationship("Event", back_populates="subjects")

    def __repr__(self) -> str:
        return f"<Subject(id={self.id}, name={self.name})>"


class PhotoSubject(Base):
    """Association between a photo and a subject it was tagged with."""

    __tablename__ = "photo_subjects"
    __table_args__ = (
        UniqueConstraint("photo_id", "subject_id", name="uq_photo_subject"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    photo_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("photos.id", ondelete="CASCADE"), nullable=False, index=True
    )
    subject_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tagged_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    def __repr__(self) -> str:
        return f"<PhotoSubject(photo_id={self.photo_id}, subject_id={self.subject_id})>"
