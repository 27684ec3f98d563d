"""
Event, folder and subject schemas for the admin API.
"""
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field, ConfigDict


class EventCreate(BaseModel):
    """Schema for event creation."""

    name: str = Field(..., min_length=1, max_length=255)
    school_name: Optional[str] = Field(None, max_length=255)
    event_date: Optional[date] = None


class EventResponse(EventCreate):
    """Schema for event response."""

    id: int
    created_at: datetime
    photo_count: int = 0
    folder_count: int = 0

    model_config = ConfigDict(from_attributes=True)


class FolderCreate(BaseModel):
    """Schema for folder creation. Folders are created top-down."""

    name: str = Field(..., min_length=1, max_length=255)
    parent_id: Optional[int] = None


class FolderResponse(BaseModel):
    """Schema for folder response."""

    id: int
    event_id: int
    parent_id: Optional[int] = None
    name: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FolderDescendantsResponse(BaseModel):
    """Folder subtree ids, anchor first."""

    folder_id: int
    descendant_ids: List[int] = []


class SubjectCreate(BaseModel):
    """Schema for subject creation."""

    name: str = Field(..., min_length=1, max_length=255)
    subject_type: str = Field("student", min_length=1, max_length=50)


class SubjectResponse(SubjectCreate):
    """Schema for subject response."""

    id: int
    event_id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
