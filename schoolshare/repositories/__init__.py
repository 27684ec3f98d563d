"""
Typed repositories, one per entity.
"""
from schoolshare.repositories.event import EventRepository, FolderRepository
from schoolshare.repositories.photo import PhotoRepository, SubjectRepository
from schoolshare.repositories.share import (
    ShareAudienceRepository,
    ShareTokenContentsRepository,
    ShareTokenRepository,
)
from schoolshare.repositories.user import AdminUserRepository

__all__ = [
    "EventRepository",
    "FolderRepository",
    "PhotoRepository",
    "SubjectRepository",
    "ShareTokenRepository",
    "ShareTokenContentsRepository",
    "ShareAudienceRepository",
    "AdminUserRepository",
]
