"""Prometheus exporter helpers."""

from __future__ import annotations

from prometheus_client import Counter


invites_created_total = Counter(
    "wardrobe_invites_created_total",
    "Total number of wardrobe access invites issued.",
)

invites_accepted_total = Counter(
    "wardrobe_invites_accepted_total",
    "Total number of wardrobe access invites accepted.",
)

suggestion_transitions_total = Counter(
    "outfit_suggestion_transitions_total",
    "Outfit suggestion lifecycle transitions.",
    ["action", "outcome"],
)

notification_failures_total = Counter(
    "notification_failures_total",
    "Notifications that could not be delivered.",
)

recommendations_total = Counter(
    "outfit_recommendations_total",
    "Outfit recommendation requests.",
    ["outcome"],
)
