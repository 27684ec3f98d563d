"""
Pydantic schemas package.
All schemas are exported here for easy import.
"""
from schoolshare.schemas.common import SuccessResponse, ErrorResponse
from schoolshare.schemas.user import (
    AdminCreate,
    AdminLogin,
    AdminResponse,
    Token,
    TokenPayload,
)
from schoolshare.schemas.photo import PhotoCreate, PhotoRecord, PhotoResponse
from schoolshare.schemas.event import (
    EventCreate,
    EventResponse,
    FolderCreate,
    FolderResponse,
    FolderDescendantsResponse,
    SubjectCreate,
    SubjectResponse,
)
from schoolshare.schemas.share import (
    EventScope,
    FolderScope,
    PhotoListScope,
    ScopeFilters,
    ShareScopeConfig,
    ShareCreate,
    ShareCreated,
    ShareAccess,
    ShareTokenResponse,
)

__all__ = [
    # Envelopes
    "SuccessResponse",
    "ErrorResponse",
    # Admin schemas
    "AdminCreate",
    "AdminLogin",
    "AdminResponse",
    "Token",
    "TokenPayload",
    # Photo schemas
    "PhotoCreate",
    "PhotoRecord",
    "PhotoResponse",
    # Event schemas
    "EventCreate",
    "EventResponse",
    "FolderCreate",
    "FolderResponse",
    "FolderDescendantsResponse",
    "SubjectCreate",
    "SubjectResponse",
    # Share schemas
    "EventScope",
    "FolderScope",
    "PhotoListScope",
    "ScopeFilters",
    "ShareScopeConfig",
    "ShareCreate",
    "ShareCreated",
    "ShareAccess",
    "ShareTokenResponse",
]
