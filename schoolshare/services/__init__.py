"""
Services package.
Contains business logic; each service receives the request's session by constructor.
"""
from schoolshare.services.auth import AuthService
from schoolshare.services.events import EventService
from schoolshare.services.scope_resolver import ScopeResolver
from schoolshare.services.materializer import ContentMaterializer
from schoolshare.services.share import ShareService
from schoolshare.services.access import AccessValidator
from schoolshare.services.tagging import TaggingService

__all__ = [
    "AuthService",
    "EventService",
    "ScopeResolver",
    "ContentMaterializer",
    "ShareService",
    "AccessValidator",
    "TaggingService",
]
