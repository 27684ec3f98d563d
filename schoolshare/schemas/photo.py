"""
Photo-related Pydantic schemas for request/response validation.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, Field, ConfigDict


class PhotoRecord(BaseModel):
    """
    Photo record returned to share visitors.
    No signed URL here; URL issuance belongs to the storage layer.
    """

    id: int
    filename: str
    storage_path: str
    file_size: int
    width: int
    height: int
    # ORM attribute is photo_metadata ("metadata" is reserved on declarative models)
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("photo_metadata", "metadata"),
    )

    model_config = ConfigDict(from_attributes=True)


class PhotoCreate(BaseModel):
    """Schema for registering photo metadata (file uploaded separately)."""

    filename: str = Field(..., min_length=1, max_length=255)
    storage_path: str = Field(..., min_length=1, max_length=500)
    folder_id: Optional[int] = None
    file_size: int = Field(0, ge=0)
    width: int = Field(0, ge=0)
    height: int = Field(0, ge=0)
    approved: bool = True
    metadata: Dict[str, Any] = Field(default_factory=dict)


class PhotoResponse(PhotoRecord):
    """Schema for admin photo response."""

    event_id: int
    folder_id: Optional[int] = None
    approved: bool
    created_at: datetime
