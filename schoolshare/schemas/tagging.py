"""
Photo-to-subject tagging schemas.
"""
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class TagAssign(BaseModel):
    """Tag several photos with one subject."""

    event_id: int
    subject_id: int
    photo_ids: List[int] = Field(..., min_length=1)


class TagRemove(BaseModel):
    """Untag photos; all subjects are removed when subject_id is absent."""

    event_id: int
    photo_ids: List[int] = Field(..., min_length=1)
    subject_id: Optional[int] = None


class TagAssignment(BaseModel):
    photo_id: int
    subject_id: int


class BatchAssign(BaseModel):
    event_id: int
    assignments: List[TagAssignment] = Field(..., min_length=1)


class BatchRemove(BaseModel):
    event_id: int
    photo_ids: List[int] = Field(..., min_length=1)


class DateRange(BaseModel):
    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def naive_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v

    @model_validator(mode="after")
    def check_order(self):
        if self.end < self.start:
            raise ValueError("date_range.end must not be before date_range.start")
        return self


class FilterCriteria(BaseModel):
    unassigned_only: bool = False
    date_range: Optional[DateRange] = None
    filename_pattern: Optional[str] = Field(None, min_length=1, max_length=255)
    folder_id: Optional[int] = None
    limit: int = Field(100, ge=1)


class BulkAssign(BaseModel):
    """Tag every photo matching the criteria with one subject."""

    event_id: int
    subject_id: int
    filter_criteria: FilterCriteria = Field(default_factory=FilterCriteria)


class TaggingResult(BaseModel):
    affected: int
    message: str


class TaggingStats(BaseModel):
    total_photos: int
    tagged_photos: int
    untagged_photos: int
    progress_percentage: float


class SubjectTagCount(BaseModel):
    id: int
    name: str
    subject_type: str
    photo_count: int


class TaggingOverview(BaseModel):
    stats: TaggingStats
    subjects: List[SubjectTagCount] = []
    untagged_photo_ids: List[int] = []
