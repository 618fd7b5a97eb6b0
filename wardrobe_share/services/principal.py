"""Authenticated caller identity and id helpers."""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")
_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True, slots=True)
class Principal:
    """Identity handed over by the upstream auth layer, trusted as-is."""

    id: str
    email: str

    @property
    def normalized_email(self) -> str:
        return normalize_email(self.email)


def new_id() -> str:
    """Return a fresh record identifier."""

    return uuid.uuid4().hex


def is_valid_id(value: object) -> bool:
    return isinstance(value, str) and bool(_ID_PATTERN.match(value))


def normalize_email(value: str | None) -> str:
    return (value or "").strip().lower()


def is_valid_email(value: str) -> bool:
    return bool(_EMAIL_PATTERN.match(value))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Normalise a timestamp to UTC; naive values are taken to be UTC already."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
