"""File naming helpers for generated assets."""

from __future__ import annotations

import re
import secrets
import string
import time

_NON_SLUG_RE = re.compile(r"[^a-z0-9]+")
_RANDOM_ALPHABET = string.ascii_lowercase + string.digits
_RANDOM_LEN = 6


def slugify(text: str, fallback: str = "item") -> str:
    """'Japanese Maple' -> 'japanese-maple'."""
    slug = _NON_SLUG_RE.sub("-", text.lower()).strip("-")
    return slug or fallback


def unique_filename(subject: str, variant: str, ext: str = "png", timestamp_ms: int | None = None) -> str:
    """{subject}-{variant}-{timestamp}-{random}.{ext}"""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    token = "".join(secrets.choice(_RANDOM_ALPHABET) for _ in range(_RANDOM_LEN))
    return f"{slugify(subject)}-{slugify(variant)}-{timestamp_ms}-{token}.{ext.lstrip('.')}"

