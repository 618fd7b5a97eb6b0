"""Cache key builders shared by services and invalidation.

Services populate only the suggestion-stats keys. The other keys are owned by
read caches in front of the engine and are deleted on every write that could
make them stale.
"""

from __future__ import annotations


def user_grants(user_id: str) -> str:
    return f"grants:user:{user_id}"


def user_collections(owner_id: str) -> str:
    return f"collections:user:{owner_id}"


def collection(collection_id: str) -> str:
    return f"collection:{collection_id}"


def share(token: str) -> str:
    return f"share:{token}"


def invited_collections(email: str) -> str:
    return f"collections:invited:{email}"


def user_suggestions(user_id: str) -> str:
    return f"suggestions:user:{user_id}"


def suggestion_stats(user_id: str) -> str:
    return f"stats:suggestions:{user_id}"


def suggestion(suggestion_id: str) -> str:
    return f"suggestion:{suggestion_id}"
