"""
Share access validation for visitors.

State checks run in a fixed order and the first failure wins:
not found -> revoked -> expired -> view limit -> password.
A failed validation never mutates state; a successful one counts one view.
"""
import time
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from schoolshare.exceptions import (
    SchoolShareError,
    ScopeNotFound,
    ShareAccessError,
    ShareExpired,
    ShareNotFound,
    ShareRevoked,
    ShareUnauthorized,
    ViewLimitExceeded,
)
from schoolshare.models.share import ShareToken
from schoolshare.repositories import (
    EventRepository,
    FolderRepository,
    PhotoRepository,
    ShareAudienceRepository,
    ShareTokenContentsRepository,
    ShareTokenRepository,
)
from schoolshare.schemas.photo import PhotoRecord
from schoolshare.schemas.share import (
    EventSummary,
    FolderScope,
    FolderSummary,
    ShareAccess,
    SharePublicInfo,
)
from schoolshare.services.scope_resolver import Scope, ScopeResolver, scope_for_token
from schoolshare.utils.logger import log_info, log_warning
from schoolshare.utils.prometheus_metrics import (
    share_access_duration_seconds,
    share_access_total,
    share_brute_force_attempts,
    share_contents_fallback_total,
)
from schoolshare.utils.security import is_well_formed_share_token, verify_password


class AccessValidator:
    """
    Decides whether a presented token currently grants access.
    """

    def __init__(self, db: AsyncSession, resolver: Optional[ScopeResolver] = None):
        self.db = db
        self.tokens = ShareTokenRepository(db)
        self.contents = ShareTokenContentsRepository(db)
        self.audiences = ShareAudienceRepository(db)
        self.events = EventRepository(db)
        self.folders = FolderRepository(db)
        self.photos = PhotoRepository(db)
        self.resolver = resolver or ScopeResolver(db)

    async def _check_token(self, token: str, password: Optional[str]) -> Tuple[ShareToken, Scope]:
        if not is_well_formed_share_token(token):
            raise ShareNotFound()
        share = await self.tokens.get_by_token(token)
        if share is None:
            raise ShareNotFound()
        if not share.is_active:
            raise ShareRevoked()
        if share.is_expired:
            raise ShareExpired()
        if share.is_view_limit_reached:
            raise ViewLimitExceeded()
        if share.password_hash:
            if not password:
                raise ShareUnauthorized(password_required=True)
            if not verify_password(password, share.password_hash):
                raise ShareUnauthorized()

        try:
            scope = scope_for_token(share)
        except ScopeNotFound as e:
            raise ShareNotFound() from e
        return share, scope

    async def _granted_photo_ids(self, share: ShareToken, scope: Scope) -> List[int]:
        photo_ids = await self.contents.photo_ids(share.id)
        if photo_ids:
            return photo_ids

        # Empty cache: resolve live for this request only, without writing back
        share_contents_fallback_total.inc()
        log_warning(
            "Share contents empty, resolving scope live",
            event="access",
            share_id=share.id,
            scope=scope.scope,
        )
        return await self.resolver.resolve(share.event_id, scope, validate=False)

    async def validate_access(
        self,
        token: str,
        password: Optional[str] = None,
        client_ip: Optional[str] = None,
    ) -> ShareAccess:
        """
        Validate a token and return the photos it grants.

        Args:
            token: Share token from the URL
            password: Optional share password
            client_ip: For logging only

        Returns:
            Scope, photo records, audience count, public share fields and event

        Raises:
            ShareNotFound, ShareRevoked, ShareExpired, ViewLimitExceeded,
            ShareUnauthorized: in that precedence
        """
        start = time.perf_counter()
        outcome = "success"
        share_id = None
        try:
            share, scope = await self._check_token(token, password)
            share_id = share.id

            event = await self.events.get(share.event_id)
            if event is None:
                raise ShareNotFound()
            folder = None
            if isinstance(scope, FolderScope):
                folder = await self.folders.get(scope.anchor_id)

            photo_ids = await self._granted_photo_ids(share, scope)
            photos = await self.photos.get_many(photo_ids, approved_only=scope.filters.approved_only)
            audiences_count = await self.audiences.count_for_token(share.id)

            # Last step: the conditional UPDATE decides races with other visitors
            if not await self.tokens.increment_view(share.id):
                await self.tokens.refresh(share)
                if not share.is_active:
                    raise ShareRevoked()
                raise ViewLimitExceeded()
            await self.tokens.refresh(share)
        except ShareAccessError as e:
            outcome = e.kind
            if isinstance(e, ShareNotFound) or (
                isinstance(e, ShareUnauthorized) and not e.password_required
            ):
                share_brute_force_attempts.inc()
            log_warning(
                "Share access denied",
                event="access",
                outcome=outcome,
                share_id=share_id,
                client_ip=client_ip,
            )
            raise
        except SchoolShareError as e:
            outcome = e.kind
            raise
        finally:
            share_access_total.labels(outcome=outcome).inc()
            share_access_duration_seconds.labels(outcome=outcome).observe(
                time.perf_counter() - start
            )

        log_info(
            "Share accessed",
            event="access",
            share_id=share.id,
            photo_count=len(photos),
            view_count=share.view_count,
            client_ip=client_ip,
        )
        return ShareAccess(
            scope_config=scope,
            photos=[PhotoRecord.model_validate(photo) for photo in photos],
            audiences_count=audiences_count,
            share=SharePublicInfo.model_validate(share),
            event=EventSummary.model_validate(event),
            folder=FolderSummary.model_validate(folder) if folder is not None else None,
        )

    async def check_photo_access(
        self,
        token: str,
        photo_id: int,
        password: Optional[str] = None,
    ) -> PhotoRecord:
        """
        Return one photo of the share without counting a view.

        Raises:
            ShareNotFound: token unknown, or the photo is outside the share
            (plus every other state check of ``validate_access``)
        """
        share, scope = await self._check_token(token, password)

        if not await self.contents.contains(share.id, photo_id):
            if await self.contents.count(share.id) > 0:
                raise ShareNotFound("Photo not found in this share")
            live_ids = await self.resolver.resolve(share.event_id, scope, validate=False)
            if photo_id not in live_ids:
                raise ShareNotFound("Photo not found in this share")

        photo = await self.photos.get(photo_id)
        if photo is None or (scope.filters.approved_only and not photo.approved):
            raise ShareNotFound("Photo not found in this share")
        return PhotoRecord.model_validate(photo)
