"""
Share contents materialization.

``share_token_contents`` is a disposable cache of a token's resolved photo
set. It is only ever rebuilt wholesale: delete every row of the token, then
insert the new set, both inside one savepoint.
"""
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolshare.config import get_settings
from schoolshare.exceptions import MaterializationError, StoreError
from schoolshare.repositories import ShareTokenContentsRepository
from schoolshare.utils.logger import log_error, log_info
from schoolshare.utils.prometheus_metrics import share_contents_materialized

settings = get_settings()


class ContentMaterializer:
    def __init__(self, db: AsyncSession, chunk_size: Optional[int] = None):
        self.db = db
        self.contents = ShareTokenContentsRepository(db)
        self.chunk_size = chunk_size or settings.share_contents_chunk_size

    async def materialize(self, share_token_id: int, photo_ids: List[int]) -> int:
        """
        Replace the token's cached contents with ``photo_ids``.

        Args:
            share_token_id: Share token ID
            photo_ids: Resolved photo IDs (duplicates ignored)

        Returns:
            Number of rows now cached for the token

        Raises:
            MaterializationError: the savepoint was rolled back; previous rows are kept
        """
        unique_ids = list(dict.fromkeys(photo_ids))
        try:
            async with self.db.begin_nested():
                await self.contents.delete_for_token(share_token_id)
                for start in range(0, len(unique_ids), self.chunk_size):
                    await self.contents.insert_many(
                        share_token_id, unique_ids[start:start + self.chunk_size]
                    )
        except (StoreError, SQLAlchemyError) as e:
            log_error(
                "Share contents materialization failed",
                event="share",
                share_id=share_token_id,
                photo_count=len(unique_ids),
                error_type=type(e).__name__,
            )
            raise MaterializationError() from e

        share_contents_materialized.observe(len(unique_ids))
        log_info(
            "Share contents materialized",
            event="share",
            share_id=share_token_id,
            photo_count=len(unique_ids),
        )
        return len(unique_ids)

    async def read(self, share_token_id: int) -> List[int]:
        return await self.contents.photo_ids(share_token_id)

    async def contains(self, share_token_id: int, photo_id: int) -> bool:
        return await self.contents.contains(share_token_id, photo_id)
