"""SQLAlchemy models describing the core domain tables."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from wardrobe_share.services.principal import new_id, utcnow
from wardrobe_share.services.states import (
    GrantStatus,
    PermissionLevel,
    SuggestionSource,
    SuggestionStatus,
)


class Base(DeclarativeBase):
    """Base class for ORM models."""

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
    )


class Garment(Base):
    """Clothing item owned by a single principal; maintained by the catalog service."""

    __tablename__ = "garments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    owner_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(128), default="", nullable=False)
    type: Mapped[str | None] = mapped_column(String(32))
    color: Mapped[str | None] = mapped_column(String(32))
    occasion: Mapped[str | None] = mapped_column(String(32))
    worn: Mapped[bool] = mapped_column(Boolean, default=False)
    needs_cleaning: Mapped[bool] = mapped_column(Boolean, default=False)
    last_worn: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class AccessGrant(Base):
    """Pairwise, email-bound sharing relationship between owner and collaborator."""

    __tablename__ = "access_grants"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    owner_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    collaborator_id: Mapped[str | None] = mapped_column(String(64), index=True)
    collaborator_email: Mapped[str] = mapped_column(String(254), nullable=False)
    status: Mapped[str] = mapped_column(String(16), default=GrantStatus.PENDING.value)
    invite_code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (Index("ix_access_grants_owner_collaborator", "owner_id", "collaborator_id"),)


class Collection(Base):
    """Owner-curated subset of garments shareable by token or email invite."""

    __tablename__ = "collections"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    owner_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500))
    garment_ids: Mapped[list[str]] = mapped_column(JSON, default=list)
    share_token: Mapped[str | None] = mapped_column(String(64), unique=True)
    invited_emails: Mapped[list[str]] = mapped_column(JSON, default=list)
    permission_level: Mapped[str] = mapped_column(
        String(16),
        default=PermissionLevel.STYLIST.value,
    )

    __table_args__ = (UniqueConstraint("owner_id", "name", name="uq_collections_owner_name"),)


class OutfitSuggestion(Base):
    """Proposed garment set exchanged between an owner and a stylist."""

    __tablename__ = "outfit_suggestions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    owner_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    stylist_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    collection_id: Mapped[str | None] = mapped_column(String(64))
    garment_ids: Mapped[list[str]] = mapped_column(JSON, default=list)
    title: Mapped[str] = mapped_column(String(200), default="Outfit Suggestion")
    description: Mapped[str] = mapped_column(Text, default="")
    occasion: Mapped[str] = mapped_column(String(32), default="casual")
    status: Mapped[str] = mapped_column(
        String(16),
        default=SuggestionStatus.PENDING.value,
        index=True,
    )
    feedback: Mapped[str | None] = mapped_column(Text)
    responded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    modifications: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    tags: Mapped[list[str]] = mapped_column(JSON, default=list)
    confidence: Mapped[int] = mapped_column(Integer, default=50)
    planned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), index=True)
    source: Mapped[str] = mapped_column(String(16), default=SuggestionSource.FRIEND.value)


class SuggestionComment(Base):
    """Append-only message in the owner/stylist thread of a suggestion."""

    __tablename__ = "suggestion_comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    suggestion_id: Mapped[str] = mapped_column(
        ForeignKey("outfit_suggestions.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    author_id: Mapped[str] = mapped_column(String(64), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)


class Notification(Base):
    """Human-readable event delivered to a user's inbox."""

    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    recipient_id: Mapped[str] = mapped_column(String(64), nullable=False)
    from_user_id: Mapped[str | None] = mapped_column(String(64))
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    related_id: Mapped[str | None] = mapped_column(String(64))
    message: Mapped[str] = mapped_column(Text, nullable=False)
    link: Mapped[str | None] = mapped_column(String(256))
    read: Mapped[bool] = mapped_column(Boolean, default=False)

    __table_args__ = (Index("ix_notifications_recipient_read", "recipient_id", "read"),)
