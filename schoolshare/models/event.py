"""
Event and folder models.

An event is the root container of a photo session (a school day, a graduation);
its folders form a tree through ``parent_id``.
"""
from datetime import date, datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String, DateTime, Date, Integer, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from schoolshare.database import Base
from schoolshare.utils.time import utcnow

if TYPE_CHECKING:
    from schoolshare.models.photo import Photo, Subject


class Event(Base):
    """Root container owning folders, photos and subjects."""

    __tablename__ = "events"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    school_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    event_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    # Relationships
    folders: Mapped[List["Folder"]] = relationship(
        "Folder", back_populates="event", cascade="all, delete-orphan"
    )
    photos: Mapped[List["Photo"]] = relationship(
        "Photo", back_populates="event", cascade="all, delete-orphan"
    )
    subjects: Mapped[List["Subject"]] = relationship(
        "Subject", back_populates="event", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, name={self.name})>"


class Folder(Base):
    """
    Node of an event's folder tree.
    ``parent_id``, when set, references a folder of the same event.
    """

    __tablename__ = "folders"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("folders.id", ondelete="CASCADE"), nullable=True, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    # Relationships
    event: Mapped["Event"] = relationship("Event", back_populates="folders")

    def __repr__(self) -> str:
        return f"<Folder(id={self.id}, event_id={self.event_id}, name={self.name})>"
