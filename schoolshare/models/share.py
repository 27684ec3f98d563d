"""
Share token models.

- ShareToken: the access grant itself (scope, flags, limits)
- ShareTokenContent: materialized photo membership of a token (derived data)
- ShareAudience: named recipients of a share (bookkeeping only, not access control)
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from schoolshare.database import Base
from schoolshare.utils.time import utcnow


class ShareToken(Base):
    """
    Share token granting access to a scoped set of photos.
    Tokens are never deleted; revocation flips ``is_active``.
    """

    __tablename__ = "share_tokens"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Unique share token (random URL-safe string)
    token: Mapped[str] = mapped_column(
        String(128), unique=True, index=True, nullable=False
    )
    event_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Legacy shape columns, kept in sync with scope_config
    share_type: Mapped[str] = mapped_column(String(20), nullable=False)
    folder_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("folders.id", ondelete="SET NULL"), nullable=True
    )
    photo_ids: Mapped[Optional[List[int]]] = mapped_column(JSON, nullable=True)

    # Normalized scope ({"scope", "anchor_id", "include_descendants", "filters", ...})
    scope_config: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)

    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    subject_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("subjects.id", ondelete="SET NULL"), nullable=True
    )

    # Link settings
    allow_download: Mapped[bool] = mapped_column(Boolean, default=False)
    allow_comments: Mapped[bool] = mapped_column(Boolean, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    max_views: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    share_metadata: Mapped[Dict[str, Any]] = mapped_column("metadata", JSON, default=dict)

    # Statistics
    view_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_accessed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    @property
    def is_expired(self) -> bool:
        return self.expires_at is not None and utcnow() > self.expires_at

    @property
    def is_view_limit_reached(self) -> bool:
        return self.max_views is not None and self.view_count >= self.max_views

    @property
    def is_password_protected(self) -> bool:
        return bool(self.password_hash)

    def __repr__(self) -> str:
        return f"<ShareToken(id={self.id}, token={self.token[:8]}...)>"


class ShareTokenContent(Base):
    """
    One row per photo a token currently grants access to.
    Rebuilt wholesale on every (re)materialization, never patched.
    """

    __tablename__ = "share_token_contents"

    share_token_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("share_tokens.id", ondelete="CASCADE"), primary_key=True
    )
    photo_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("photos.id", ondelete="CASCADE"), primary_key=True, index=True
    )

    def __repr__(self) -> str:
        return f"<ShareTokenContent(share_token_id={self.share_token_id}, photo_id={self.photo_id})>"


class ShareAudience(Base):
    """Recipient of a share (family, group or manually entered contact)."""

    __tablename__ = "share_audiences"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    share_token_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("share_tokens.id", ondelete="CASCADE"), nullable=False, index=True
    )
    audience_type: Mapped[str] = mapped_column(String(20), nullable=False)
    subject_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    contact_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="pending")
    audience_metadata: Mapped[Dict[str, Any]] = mapped_column("metadata", JSON, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    def __repr__(self) -> str:
        return f"<ShareAudience(id={self.id}, type={self.audience_type})>"
