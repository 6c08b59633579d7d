from __future__ import annotations

from datetime import datetime, timezone
import re
import unicodedata


_NON_ALNUM_PATTERN = re.compile(r"[^a-z0-9]+")


def unix_timestamp_now() -> int:
    return int(datetime.now(timezone.utc).timestamp())


def now_ms() -> int:
    """Current epoch time in milliseconds."""

    return int(datetime.now(timezone.utc).timestamp() * 1000)


def slugify(text: str) -> str:
    normalized = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    return _NON_ALNUM_PATTERN.sub("-", normalized.lower()).strip("-")
