"""
Share token, contents cache and audience repositories.
"""
from typing import Dict, List, Optional, Sequence

from sqlalchemy import delete, func, insert, or_, select, update

from schoolshare.models.share import ShareAudience, ShareToken, ShareTokenContent
from schoolshare.repositories.base import BaseRepository
from schoolshare.utils.time import utcnow


class ShareTokenRepository(BaseRepository):
    async def get(self, share_token_id: int) -> Optional[ShareToken]:
        result = await self._execute(select(ShareToken).where(ShareToken.id == share_token_id))
        return result.scalar_one_or_none()

    async def get_by_token(self, token: str) -> Optional[ShareToken]:
        result = await self._execute(select(ShareToken).where(ShareToken.token == token))
        return result.scalar_one_or_none()

    async def create(self, share: ShareToken) -> ShareToken:
        return await self._add(share)

    async def list_by_event(self, event_id: int) -> Sequence[ShareToken]:
        result = await self._execute(
            select(ShareToken)
            .where(ShareToken.event_id == event_id)
            .order_by(ShareToken.created_at.desc(), ShareToken.id.desc())
        )
        return result.scalars().all()

    async def deactivate(self, share_token_id: int) -> bool:
        result = await self._execute(
            update(ShareToken)
            .where(ShareToken.id == share_token_id)
            .values(is_active=False, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def increment_view(self, share_token_id: int) -> bool:
        """
        Atomically count one view.

        The conditional UPDATE is the only cross-request guard: it matches no
        row once the token is inactive or ``view_count`` has reached
        ``max_views``, so the counter can never overshoot the limit.

        Returns:
            True if the view was counted
        """
        result = await self._execute(
            update(ShareToken)
            .where(
                ShareToken.id == share_token_id,
                ShareToken.is_active.is_(True),
                or_(
                    ShareToken.max_views.is_(None),
                    ShareToken.view_count < ShareToken.max_views,
                ),
            )
            .values(view_count=ShareToken.view_count + 1, last_accessed_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def refresh(self, share: ShareToken) -> ShareToken:
        await self.session.refresh(share)
        return share


class ShareTokenContentsRepository(BaseRepository):
    async def delete_for_token(self, share_token_id: int) -> int:
        result = await self._execute(
            delete(ShareTokenContent).where(ShareTokenContent.share_token_id == share_token_id)
        )
        return result.rowcount or 0

    async def insert_many(self, share_token_id: int, photo_ids: List[int]) -> int:
        if not photo_ids:
            return 0
        await self._execute(
            insert(ShareTokenContent),
            [{"share_token_id": share_token_id, "photo_id": pid} for pid in photo_ids],
        )
        return len(photo_ids)

    async def photo_ids(self, share_token_id: int) -> List[int]:
        result = await self._execute(
            select(ShareTokenContent.photo_id)
            .where(ShareTokenContent.share_token_id == share_token_id)
            .order_by(ShareTokenContent.photo_id)
        )
        return list(result.scalars().all())

    async def contains(self, share_token_id: int, photo_id: int) -> bool:
        result = await self._execute(
            select(ShareTokenContent.photo_id).where(
                ShareTokenContent.share_token_id == share_token_id,
                ShareTokenContent.photo_id == photo_id,
            )
        )
        return result.scalar_one_or_none() is not None

    async def count(self, share_token_id: int) -> int:
        result = await self._execute(
            select(func.count()).select_from(ShareTokenContent).where(
                ShareTokenContent.share_token_id == share_token_id
            )
        )
        return result.scalar_one()


class ShareAudienceRepository(BaseRepository):
    async def add_many(self, audiences: List[ShareAudience]) -> List[ShareAudience]:
        if not audiences:
            return []
        self.session.add_all(audiences)
        await self._flush()
        return audiences

    async def list_for_token(self, share_token_id: int) -> Sequence[ShareAudience]:
        result = await self._execute(
            select(ShareAudience)
            .where(ShareAudience.share_token_id == share_token_id)
            .order_by(ShareAudience.id)
        )
        return result.scalars().all()

    async def count_for_token(self, share_token_id: int) -> int:
        result = await self._execute(
            select(func.count(ShareAudience.id)).where(
                ShareAudience.share_token_id == share_token_id
            )
        )
        return result.scalar_one()

    async def count_for_tokens(self, share_token_ids: List[int]) -> Dict[int, int]:
        if not share_token_ids:
            return {}
        result = await self._execute(
            select(ShareAudience.share_token_id, func.count(ShareAudience.id))
            .where(ShareAudience.share_token_id.in_(share_token_ids))
            .group_by(ShareAudience.share_token_id)
        )
        return {token_id: count for token_id, count in result.all()}

    async def existing_keys(self, share_token_id: int) -> set:
        """``(audience_type, subject_id, contact_email)`` already registered."""
        result = await self._execute(
            select(
                ShareAudience.audience_type,
                ShareAudience.subject_id,
                ShareAudience.contact_email,
            ).where(ShareAudience.share_token_id == share_token_id)
        )
        return {tuple(row) for row in result.all()}
