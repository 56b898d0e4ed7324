"""Shared Kernel - Core types shared across bounded contexts.

Kept minimal on purpose:
- OriginKey: the single normalization rule for per-site storage keys
- Control-surface marker used by targeting, context, patching and versioning
- Baseline identifiers used by versioning and the session coordinator
"""

from __future__ import annotations

import secrets
import string
import time
from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlsplit

# Attribute that flags an element as part of the engine's own UI.
CONTROL_SURFACE_ATTR = "data-polish-extension"
CONTROL_SURFACE_ATTR_PREFIX = "data-polish"

BASELINE_ID = "_live_website_"
BASELINE_NAME = "Live Website"


def normalize_origin(url: str) -> str:
    """Normalize a navigated URL into the per-site storage key.

    Rules:
    - keep scheme, host (with port) and path
    - drop query string and fragment
    - drop trailing slashes from the path

    Examples:
        >>> normalize_origin("https://example.com/shop/?q=1#top")
        'https://example.com/shop'
        >>> normalize_origin("https://example.com/")
        'https://example.com'
    """
    if not url or not url.strip():
        raise ValueError("URL cannot be empty")
    raw = url.strip()
    parts = urlsplit(raw)
    if parts.scheme and parts.netloc:
        path = parts.path.rstrip("/")
        return f"{parts.scheme.lower()}://{parts.netloc.lower()}{path}"
    # Not an absolute URL; strip fragment and query textually.
    return raw.split("#", 1)[0].split("?", 1)[0].rstrip("/")


@dataclass(frozen=True)
class OriginKey:
    """Normalized origin identifying a site for storage partitioning."""

    value: str

    def __post_init__(self) -> None:
        if not self.value:
            raise ValueError("OriginKey cannot be empty")

    @classmethod
    def from_url(cls, url: str) -> "OriginKey":
        return cls(normalize_origin(url))

    @property
    def hostname(self) -> str:
        return urlsplit(self.value).hostname or self.value

    def __str__(self) -> str:
        return self.value


def now_millis() -> int:
    """Wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def random_suffix(length: int = 9) -> str:
    alphabet = string.ascii_lowercase + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


class InteractionMode(str, Enum):
    """How an instruction is handled: edit the target, or ask about the page."""

    EDIT = "edit"
    CHAT = "chat"
