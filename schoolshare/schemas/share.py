"""
Share token related Pydantic schemas for request/response validation.

A share's scope is a tagged union on ``scope``:

- ``FolderScope``: one folder, optionally with its whole subtree
- ``EventScope``: every photo of the event (filed or not)
- ``PhotoListScope``: an explicit list of photo ids

The persisted form is ``scope.model_dump(mode="json")`` and re-parses to an
identical value through ``parse_scope_config``.
"""
from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_validator,
)

from schoolshare.schemas.photo import PhotoRecord

ScopeKind = Literal["folder", "event", "photos"]
AudienceType = Literal["family", "group", "manual"]


def _unique(ids: Optional[List[int]]) -> Optional[List[int]]:
    # order-preserving dedupe
    if ids is None:
        return None
    return list(dict.fromkeys(ids))


class ScopeFilters(BaseModel):
    """Predicates applied after structural resolution."""

    approved_only: bool = True
    folder_ids: Optional[List[int]] = None
    subject_ids: Optional[List[int]] = None

    @field_validator("folder_ids", "subject_ids")
    @classmethod
    def dedupe_ids(cls, v: Optional[List[int]]) -> Optional[List[int]]:
        return _unique(v)


class FolderScope(BaseModel):
    scope: Literal["folder"] = "folder"
    anchor_id: int
    include_descendants: bool = False
    filters: ScopeFilters = Field(default_factory=ScopeFilters)


class EventScope(BaseModel):
    """The whole folder tree is always included."""

    scope: Literal["event"] = "event"
    anchor_id: int
    include_descendants: bool = True
    filters: ScopeFilters = Field(default_factory=ScopeFilters)

    @field_validator("include_descendants")
    @classmethod
    def whole_tree(cls, v: bool) -> bool:
        return True


class PhotoListScope(BaseModel):
    scope: Literal["photos"] = "photos"
    anchor_id: None = None
    photo_ids: List[int] = Field(..., min_length=1)
    include_descendants: bool = False
    filters: ScopeFilters = Field(default_factory=ScopeFilters)

    @field_validator("photo_ids")
    @classmethod
    def dedupe_photo_ids(cls, v: List[int]) -> List[int]:
        return _unique(v)

    @field_validator("include_descendants")
    @classmethod
    def no_descendants(cls, v: bool) -> bool:
        return False


ShareScopeConfig = Annotated[
    Union[FolderScope, EventScope, PhotoListScope],
    Field(discriminator="scope"),
]

_scope_adapter: TypeAdapter = TypeAdapter(ShareScopeConfig)


def parse_scope_config(data: Dict[str, Any]) -> Union[FolderScope, EventScope, PhotoListScope]:
    """Parse a persisted scope_config value (raises ``pydantic.ValidationError``)."""
    return _scope_adapter.validate_python(data)


def dump_scope_config(scope: Union[FolderScope, EventScope, PhotoListScope]) -> Dict[str, Any]:
    return scope.model_dump(mode="json")


# ============== Requests ==============

class ScopeConfigInput(BaseModel):
    """
    Loose scope descriptor accepted on creation; normalized by the share
    service together with the legacy top-level fields. ``selection`` is
    accepted as an alias of ``photos``.
    """

    scope: Literal["folder", "event", "photos", "selection"]
    anchor_id: Optional[int] = None
    include_descendants: Optional[bool] = None
    photo_ids: Optional[List[int]] = None
    filters: Optional[ScopeFilters] = None


class ShareAudienceCreate(BaseModel):
    """Requested recipient. Invalid entries are dropped during normalization."""

    type: AudienceType
    subject_id: Optional[int] = None
    contact_email: Optional[str] = Field(None, max_length=255)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ShareCreate(BaseModel):
    """Schema for creating a share token."""

    event_id: Optional[int] = None
    share_type: Optional[ScopeKind] = None
    folder_id: Optional[int] = None
    photo_ids: Optional[List[int]] = None
    scope_config: Optional[ScopeConfigInput] = None
    include_descendants: Optional[bool] = None
    subject_id: Optional[int] = None

    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    password: Optional[str] = Field(None, min_length=1, max_length=128)
    expires_at: Optional[datetime] = None
    expires_in_days: Optional[int] = Field(
        None,
        ge=1,
        le=365,
        description="Number of days until the link expires (ignored when expires_at is set)",
    )
    max_views: Optional[int] = Field(None, ge=1)
    allow_download: bool = False
    allow_comments: bool = False
    metadata: Dict[str, Any] = Field(default_factory=dict)
    audiences: List[ShareAudienceCreate] = Field(default_factory=list)

    @field_validator("expires_at")
    @classmethod
    def expires_at_naive_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        # Timestamps are stored as naive UTC
        if v is not None and v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v


class AudiencesAdd(BaseModel):
    audiences: List[ShareAudienceCreate] = Field(..., min_length=1)


class ShareAccessRequest(BaseModel):
    """Body of ``POST /share/{token}/access``."""

    password: Optional[str] = Field(None, max_length=128)


# ============== Responses ==============

class ShareTokenResponse(BaseModel):
    """Admin view of a share token (password hash never exposed)."""

    id: int
    token: str
    event_id: int
    share_type: str
    folder_id: Optional[int] = None
    photo_ids: Optional[List[int]] = None
    subject_id: Optional[int] = None
    scope_config: Optional[Dict[str, Any]] = None
    title: Optional[str] = None
    description: Optional[str] = None
    allow_download: bool
    allow_comments: bool
    is_active: bool
    is_password_protected: bool = False
    expires_at: Optional[datetime] = None
    max_views: Optional[int] = None
    view_count: int
    last_accessed_at: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("share_metadata", "metadata"),
    )
    created_at: datetime
    updated_at: datetime
    audiences_count: int = 0

    model_config = ConfigDict(from_attributes=True)


class ShareCreated(BaseModel):
    token: str
    share_url: str
    scope_config: ShareScopeConfig
    audiences_count: int
    photo_count: int
    share: ShareTokenResponse
    # Set when audience registration failed but the share was still created
    audience_error: Optional[str] = None


class ShareAudienceResponse(BaseModel):
    id: int
    share_token_id: int
    audience_type: str
    subject_id: Optional[int] = None
    contact_email: Optional[str] = None
    status: str
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("audience_metadata", "metadata"),
    )
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AudiencesAdded(BaseModel):
    audiences: List[ShareAudienceResponse] = []
    count: int = 0


class ContentsRefreshed(BaseModel):
    share_id: int
    photo_count: int


class SharePublicInfo(BaseModel):
    """Token fields visible to visitors."""

    title: Optional[str] = None
    description: Optional[str] = None
    allow_download: bool
    allow_comments: bool
    expires_at: Optional[datetime] = None
    view_count: int
    max_views: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class EventSummary(BaseModel):
    id: int
    name: str
    school_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class FolderSummary(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class ShareAccess(BaseModel):
    """Result of a successful token validation."""

    scope_config: ShareScopeConfig
    photos: List[PhotoRecord] = []
    audiences_count: int = 0
    share: SharePublicInfo
    event: EventSummary
    folder: Optional[FolderSummary] = None
