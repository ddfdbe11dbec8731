"""Round-robin API key pool owned by a single crawl."""

from __future__ import annotations

import re
from typing import Iterable, Tuple

from ..exceptions import ValidationError

_SEPARATORS = re.compile(r"[\n,]+")


def parse_credentials(raw: str | None) -> list[str]:
    """Split a newline/comma separated blob into trimmed, non-blank keys."""

    if not raw:
        return []
    return [part.strip() for part in _SEPARATORS.split(raw) if part.strip()]


class CredentialPool:
    """Ordered credentials plus the mutable rotation state of one crawl.

    The pool is created per crawl invocation and must never be shared between
    concurrent crawls: ``active_index`` and ``consecutive_rate_limit_count``
    belong to whoever holds the instance.
    """

    def __init__(self, credentials: Iterable[str]) -> None:
        cleaned: Tuple[str, ...] = tuple(
            key.strip() for key in credentials if key and key.strip()
        )
        if not cleaned:
            raise ValidationError("Please provide at least one API key before fetching.")
        self._credentials = cleaned
        self.active_index = 0
        self.consecutive_rate_limit_count = 0

    @classmethod
    def from_raw(cls, raw: str | None) -> "CredentialPool":
        return cls(parse_credentials(raw))

    def __len__(self) -> int:
        return len(self._credentials)

    def __repr__(self) -> str:
        # Never echo the secrets themselves.
        return (
            f"CredentialPool(size={len(self)}, active_index={self.active_index}, "
            f"consecutive_rate_limit_count={self.consecutive_rate_limit_count})"
        )

    @property
    def active(self) -> str:
        return self._credentials[self.active_index]

    @property
    def can_rotate(self) -> bool:
        return len(self._credentials) > 1

    def record_failure(self) -> int:
        self.consecutive_rate_limit_count += 1
        return self.consecutive_rate_limit_count

    def reset_failures(self) -> None:
        self.consecutive_rate_limit_count = 0

    def rotate_to_next(self) -> int:
        """Advance to the next credential and return the new active index."""

        if not self.can_rotate:
            raise RuntimeError("A single-credential pool cannot rotate")
        self.active_index = (self.active_index + 1) % len(self._credentials)
        self.consecutive_rate_limit_count = 0
        return self.active_index


__all__ = ["CredentialPool", "parse_credentials"]
