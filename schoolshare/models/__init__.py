"""
Database models package.
All models are exported here for easy import.
"""
from schoolshare.models.user import AdminUser
from schoolshare.models.event import Event, Folder
from schoolshare.models.photo import Photo, Subject, PhotoSubject
from schoolshare.models.share import ShareToken, ShareTokenContent, ShareAudience

__all__ = [
    "AdminUser",
    "Event",
    "Folder",
    "Photo",
    "Subject",
    "PhotoSubject",
    "ShareToken",
    "ShareTokenContent",
    "ShareAudience",
]
