"""
Share token management: creation, revocation, audiences and view counting.
"""
from datetime import timedelta
from typing import List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolshare.config import get_settings
from schoolshare.exceptions import (
    EntityNotFound,
    InvalidShareRequest,
    SchoolShareError,
    ScopeNotFound,
    StoreError,
)
from schoolshare.models.share import ShareAudience, ShareToken
from schoolshare.repositories import (
    EventRepository,
    FolderRepository,
    PhotoRepository,
    ShareAudienceRepository,
    ShareTokenRepository,
    SubjectRepository,
)
from schoolshare.schemas.share import (
    AudiencesAdded,
    ContentsRefreshed,
    EventScope,
    FolderScope,
    PhotoListScope,
    ScopeFilters,
    ShareAudienceCreate,
    ShareAudienceResponse,
    ShareCreate,
    ShareCreated,
    ShareTokenResponse,
    dump_scope_config,
)
from schoolshare.services.materializer import ContentMaterializer
from schoolshare.services.scope_resolver import Scope, ScopeResolver, scope_for_token
from schoolshare.utils.logger import log_info, log_warning
from schoolshare.utils.prometheus_metrics import (
    share_creation_total,
    share_revocations_total,
)
from schoolshare.utils.security import generate_share_token, hash_password
from schoolshare.utils.time import utcnow

settings = get_settings()


def _scope_kind(value: Optional[str]) -> Optional[str]:
    return "photos" if value == "selection" else value


class ShareService:
    """
    Service for share token operations.
    Scope resolution and materialization are delegated to ScopeResolver and
    ContentMaterializer; all writes join the caller's unit of work.
    """

    def __init__(
        self,
        db: AsyncSession,
        resolver: Optional[ScopeResolver] = None,
        materializer: Optional[ContentMaterializer] = None,
    ):
        self.db = db
        self.tokens = ShareTokenRepository(db)
        self.audiences = ShareAudienceRepository(db)
        self.events = EventRepository(db)
        self.folders = FolderRepository(db)
        self.photos = PhotoRepository(db)
        self.subjects = SubjectRepository(db)
        self.resolver = resolver or ScopeResolver(db)
        self.materializer = materializer or ContentMaterializer(db)

    @staticmethod
    def build_share_url(token: str) -> str:
        return f"{settings.public_base_url.rstrip('/')}/share/{token}"

    # ============== Creation ==============

    async def normalize_request(self, data: ShareCreate) -> Tuple[int, Scope]:
        """
        Merge the legacy top-level fields and ``scope_config`` into one scope.

        Args:
            data: Creation request

        Returns:
            (event_id, scope)

        Raises:
            InvalidShareRequest: no scope kind, conflicting kinds or missing anchor
            ScopeNotFound: event could not be derived from a missing folder/photo
        """
        provided = data.scope_config
        provided_kind = _scope_kind(provided.scope) if provided else None
        share_type = data.share_type or provided_kind
        if share_type is None:
            raise InvalidShareRequest("share_type or scope_config.scope is required")
        if data.share_type and provided_kind and data.share_type != provided_kind:
            raise InvalidShareRequest(
                f"share_type '{data.share_type}' conflicts with scope_config.scope '{provided_kind}'"
            )

        photo_ids = list(dict.fromkeys([
            *((provided.photo_ids or []) if provided else []),
            *(data.photo_ids or []),
        ]))
        folder_id = data.folder_id
        if provided and provided_kind == "folder" and provided.anchor_id is not None:
            folder_id = provided.anchor_id
        event_anchor = provided.anchor_id if provided and provided_kind == "event" else None

        event_id = data.event_id or event_anchor
        if event_id is None:
            event_id = await self._derive_event_id(folder_id, photo_ids)

        include_descendants = data.include_descendants
        if provided and provided.include_descendants is not None:
            include_descendants = provided.include_descendants
        filters = (provided.filters if provided and provided.filters else None) or ScopeFilters()

        if share_type == "folder":
            if folder_id is None:
                raise InvalidShareRequest("folder_id is required for a folder share")
            return event_id, FolderScope(
                anchor_id=folder_id,
                include_descendants=bool(include_descendants),
                filters=filters,
            )
        if share_type == "photos":
            if not photo_ids:
                raise InvalidShareRequest("photo_ids is required for a photo selection share")
            return event_id, PhotoListScope(photo_ids=photo_ids, filters=filters)
        return event_id, EventScope(anchor_id=event_anchor or event_id, filters=filters)

    async def _derive_event_id(self, folder_id: Optional[int], photo_ids: List[int]) -> int:
        if folder_id is not None:
            folder = await self.folders.get(folder_id)
            if folder is None:
                raise ScopeNotFound(f"Folder {folder_id} not found", field="folder_id")
            return folder.event_id
        if photo_ids:
            photo = await self.photos.get(photo_ids[0])
            if photo is None:
                raise ScopeNotFound(f"Photo {photo_ids[0]} not found", field="photo_ids")
            return photo.event_id
        raise InvalidShareRequest("event_id is required")

    async def create_share(self, data: ShareCreate) -> ShareCreated:
        """
        Create a share token.

        Order: normalize -> resolve (fails before any write) -> insert token ->
        materialize contents -> register audiences.

        Args:
            data: Creation request

        Returns:
            Token, share URL, normalized scope and counts

        Raises:
            InvalidShareRequest, ScopeNotFound: nothing was written
            MaterializationError: contents could not be cached; the caller's
                transaction must be rolled back so no token survives
        """
        scope_label = data.share_type or (_scope_kind(data.scope_config.scope) if data.scope_config else "unknown")
        try:
            if len(data.audiences) > settings.share_max_audiences:
                raise InvalidShareRequest(
                    f"At most {settings.share_max_audiences} audiences per share"
                )
            event_id, scope = await self.normalize_request(data)
            scope_label = scope.scope
            photo_ids = await self.resolver.resolve(event_id, scope)
            if data.subject_id is not None:
                subject = await self.subjects.get(data.subject_id)
                if subject is None or subject.event_id != event_id:
                    raise ScopeNotFound(
                        f"Subject {data.subject_id} not found in event {event_id}",
                        field="subject_id",
                    )

            share = await self.tokens.create(self._new_token(event_id, scope, data))
            photo_count = await self.materializer.materialize(share.id, photo_ids)
        except SchoolShareError as e:
            share_creation_total.labels(scope=scope_label, result=e.kind).inc()
            log_warning(
                "Share creation failed",
                event="share",
                event_id=data.event_id,
                scope=scope_label,
                error_kind=e.kind,
                reason=e.message,
            )
            raise

        audiences_count = 0
        audience_error = None
        if data.audiences:
            try:
                audiences_count = len(await self._register_audiences(share.id, data.audiences))
            except StoreError as e:
                # audiences are bookkeeping only; the share stands
                audience_error = e.message
                log_warning(
                    "Failed to register share audiences",
                    event="share",
                    share_id=share.id,
                    requested=len(data.audiences),
                )

        share_creation_total.labels(scope=scope.scope, result="success").inc()
        log_info(
            "Share created",
            event="share",
            share_id=share.id,
            event_id=event_id,
            scope=scope.scope,
            photo_count=photo_count,
            audiences_count=audiences_count,
            password_protected=share.is_password_protected,
            max_views=share.max_views,
        )

        return ShareCreated(
            token=share.token,
            share_url=self.build_share_url(share.token),
            scope_config=scope,
            audiences_count=audiences_count,
            photo_count=photo_count,
            share=self._to_response(share, audiences_count),
            audience_error=audience_error,
        )

    def _new_token(self, event_id: int, scope: Scope, data: ShareCreate) -> ShareToken:
        now = utcnow()
        expires_at = data.expires_at
        if expires_at is None and data.expires_in_days:
            expires_at = now + timedelta(days=data.expires_in_days)

        return ShareToken(
            token=generate_share_token(),
            event_id=event_id,
            share_type=scope.scope,
            folder_id=scope.anchor_id if isinstance(scope, FolderScope) else None,
            photo_ids=scope.photo_ids if isinstance(scope, PhotoListScope) else None,
            scope_config=dump_scope_config(scope),
            subject_id=data.subject_id,
            title=data.title,
            description=data.description,
            password_hash=hash_password(data.password) if data.password else None,
            expires_at=expires_at,
            max_views=data.max_views,
            view_count=0,
            allow_download=data.allow_download,
            allow_comments=data.allow_comments,
            is_active=True,
            share_metadata={
                **data.metadata,
                "share_scope": scope.scope,
                "share_anchor": scope.anchor_id,
                "share_include_descendants": scope.include_descendants,
                "created_at": now.isoformat(),
            },
        )

    # ============== Audiences ==============

    @staticmethod
    def normalize_audiences(
        share_token_id: int,
        audiences: List[ShareAudienceCreate],
        existing: Optional[set] = None,
    ) -> List[ShareAudience]:
        """
        Build audience rows, dropping invalid and duplicate entries.

        Manual audiences need an email (stored lower-cased); family and group
        audiences need a subject id.
        """
        seen = set(existing or ())
        rows = []
        for audience in audiences:
            if audience.type == "manual":
                email = (audience.contact_email or "").strip().lower()
                if not email or "@" not in email:
                    continue
                key = ("manual", email)
                subject_id = None
            else:
                if audience.subject_id is None:
                    continue
                email = (audience.contact_email or "").strip() or None
                key = (audience.type, audience.subject_id)
                subject_id = audience.subject_id
            if key in seen:
                continue
            seen.add(key)
            rows.append(ShareAudience(
                share_token_id=share_token_id,
                audience_type=audience.type,
                subject_id=subject_id,
                contact_email=email,
                status="pending",
                audience_metadata=dict(audience.metadata),
            ))
        return rows

    async def _register_audiences(
        self,
        share_token_id: int,
        audiences: List[ShareAudienceCreate],
    ) -> List[ShareAudience]:
        existing = set()
        for audience_type, subject_id, email in await self.audiences.existing_keys(share_token_id):
            existing.add(("manual", email) if audience_type == "manual" else (audience_type, subject_id))

        rows = self.normalize_audiences(share_token_id, audiences, existing)
        if not rows:
            return []
        try:
            async with self.db.begin_nested():
                await self.audiences.add_many(rows)
        except SQLAlchemyError as e:
            raise StoreError("Failed to register share audiences") from e
        return rows

    async def add_audiences(
        self,
        share_token_id: int,
        audiences: List[ShareAudienceCreate],
    ) -> AudiencesAdded:
        share = await self._get_or_404(share_token_id)
        inserted = await self._register_audiences(share.id, audiences)
        if inserted:
            share.share_metadata = {
                **(share.share_metadata or {}),
                "last_audience_update": utcnow().isoformat(),
            }
            await self.tokens.flush()
        log_info(
            "Share audiences added",
            event="share",
            share_id=share.id,
            requested=len(audiences),
            added=len(inserted),
        )
        return AudiencesAdded(
            audiences=[ShareAudienceResponse.model_validate(row) for row in inserted],
            count=len(inserted),
        )

    async def list_audiences(self, share_token_id: int) -> List[ShareAudienceResponse]:
        await self._get_or_404(share_token_id)
        rows = await self.audiences.list_for_token(share_token_id)
        return [ShareAudienceResponse.model_validate(row) for row in rows]

    # ============== Lifecycle ==============

    async def increment_view(self, share_token_id: int) -> bool:
        """Count one view unless revoked or at the view limit."""
        return await self.tokens.increment_view(share_token_id)

    async def revoke(self, share_token_id: int) -> ShareTokenResponse:
        """
        Deactivate a share. There is no way back; create a new share instead.
        Revoking an already revoked share is a no-op.
        """
        share = await self._get_or_404(share_token_id)
        if share.is_active:
            await self.tokens.deactivate(share.id)
            await self.tokens.refresh(share)
            share_revocations_total.inc()
            log_info("Share revoked", event="share", share_id=share.id, event_id=share.event_id)
        audiences_count = await self.audiences.count_for_token(share.id)
        return self._to_response(share, audiences_count)

    async def refresh_contents(self, share_token_id: int) -> ContentsRefreshed:
        """Re-resolve the stored scope and rebuild the contents cache."""
        share = await self._get_or_404(share_token_id)
        scope = scope_for_token(share)
        photo_ids = await self.resolver.resolve(share.event_id, scope)
        photo_count = await self.materializer.materialize(share.id, photo_ids)
        log_info(
            "Share contents refreshed",
            event="share",
            share_id=share.id,
            photo_count=photo_count,
        )
        return ContentsRefreshed(share_id=share.id, photo_count=photo_count)

    # ============== Queries ==============

    async def get_share(self, share_token_id: int) -> ShareTokenResponse:
        share = await self._get_or_404(share_token_id)
        audiences_count = await self.audiences.count_for_token(share.id)
        return self._to_response(share, audiences_count)

    async def list_event_shares(self, event_id: int) -> List[ShareTokenResponse]:
        """Shares of an event, newest first, with audience counts."""
        if not await self.events.exists(event_id):
            raise EntityNotFound(f"Event {event_id} not found")
        shares = await self.tokens.list_by_event(event_id)
        counts = await self.audiences.count_for_tokens([share.id for share in shares])
        return [self._to_response(share, counts.get(share.id, 0)) for share in shares]

    async def _get_or_404(self, share_token_id: int) -> ShareToken:
        share = await self.tokens.get(share_token_id)
        if share is None:
            raise EntityNotFound(f"Share {share_token_id} not found")
        return share

    @staticmethod
    def _to_response(share: ShareToken, audiences_count: int) -> ShareTokenResponse:
        response = ShareTokenResponse.model_validate(share)
        response.audiences_count = audiences_count
        return response
