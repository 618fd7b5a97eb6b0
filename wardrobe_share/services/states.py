"""Enumerations describing record lifecycles and fixed vocabularies."""

from enum import Enum


class GrantStatus(str, Enum):
    """Lifecycle of a pairwise wardrobe access grant."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REVOKED = "revoked"


class PermissionLevel(str, Enum):
    """What a collection link lets its bearer do."""

    VIEWER = "viewer"
    STYLIST = "stylist"


class SuggestionStatus(str, Enum):
    """Finite states of an outfit suggestion."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    MODIFIED = "modified"


class SuggestionSource(str, Enum):
    """Who produced the garment set."""

    SELF = "self"
    FRIEND = "friend"
    SYSTEM = "system"


class CommentRole(str, Enum):
    """Role of a comment author relative to the suggestion."""

    OWNER = "owner"
    STYLIST = "stylist"


class NotificationType(str, Enum):
    """Events delivered to the counterparty of a suggestion."""

    OUTFIT_SUGGESTED = "outfit_suggested"
    OUTFIT_ACCEPTED = "outfit_accepted"
    OUTFIT_REJECTED = "outfit_rejected"


OCCASIONS = frozenset(
    {"casual", "work", "party", "formal", "sport", "date", "travel", "any"},
)
