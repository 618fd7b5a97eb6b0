"""Request and response models for the HTTP adapter."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Schema(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class InviteRequest(Schema):
    email: str


class AcceptInviteRequest(Schema):
    code: str


class GrantOut(Schema):
    id: str
    owner_id: str
    collaborator_id: str | None = None
    collaborator_email: str
    status: str
    invite_code: str
    accepted_at: datetime | None = None
    created_at: datetime | None = None


class SharesOut(Schema):
    outgoing: list[GrantOut]
    incoming: list[GrantOut]


class CollectionRequest(Schema):
    id: str | None = None
    name: str
    garment_ids: list[str] = Field(default_factory=list)
    permission_level: str = "stylist"
    description: str | None = None


class CollectionOut(Schema):
    id: str
    owner_id: str
    name: str
    description: str | None = None
    garment_ids: list[str]
    share_token: str | None = None
    invited_emails: list[str]
    permission_level: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class GarmentOut(Schema):
    id: str
    owner_id: str
    name: str
    type: str | None = None
    color: str | None = None
    occasion: str | None = None
    worn: bool
    needs_cleaning: bool
    last_worn: datetime | None = None


class SharedCollectionOut(Schema):
    collection: CollectionOut
    garments: list[GarmentOut]


class CollectionInviteRequest(Schema):
    emails: list[str] = Field(default_factory=list)


class CollectionInviteOut(Schema):
    share_link: str
    invited_emails: list[str]


class SuggestionRequest(Schema):
    owner_id: str
    garment_ids: list[str] = Field(default_factory=list)
    title: str | None = None
    description: str | None = None
    occasion: str | None = None
    tags: list[str] = Field(default_factory=list)
    collection_id: str | None = None


class SuggestionOut(Schema):
    id: str
    owner_id: str
    stylist_id: str
    collection_id: str | None = None
    garment_ids: list[str]
    title: str
    description: str
    occasion: str
    status: str
    feedback: str | None = None
    responded_at: datetime | None = None
    modifications: list[dict[str, Any]]
    tags: list[str]
    confidence: int
    planned_at: datetime | None = None
    source: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TransitionRequest(Schema):
    action: str
    feedback: str | None = None


class ModifyRequest(Schema):
    add_ids: list[str] = Field(default_factory=list)
    remove_ids: list[str] = Field(default_factory=list)


class CommentRequest(Schema):
    message: str


class CommentOut(Schema):
    id: int
    suggestion_id: str
    author_id: str
    role: str
    message: str
    created_at: datetime | None = None


class StatsOut(Schema):
    total_received: int
    total_created: int
    accepted_received: int
    accepted_created: int


class PlanRequest(Schema):
    garment_ids: list[str] = Field(default_factory=list)
    planned_at: datetime
    title: str | None = None
    occasion: str | None = None


class RecommendRequest(Schema):
    owner_id: str
    occasion: str = "casual"


class RecommendationOut(Schema):
    occasion: str
    recommendation: dict[str, Any] | None = None
    confidence: int
    reasoning: str


class WardrobeSummaryOut(Schema):
    total_items: int
    available_items: int
    worn_items: int
    needs_cleaning_items: int


class NotificationOut(Schema):
    id: str
    recipient_id: str
    from_user_id: str | None = None
    type: str
    related_id: str | None = None
    message: str
    link: str | None = None
    read: bool
    created_at: datetime | None = None


class NotificationPage(Schema):
    notifications: list[NotificationOut]
    unread_count: int
