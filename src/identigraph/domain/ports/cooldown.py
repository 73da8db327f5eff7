"""Port for suppressing repeated auto-merge attempts on the same contact pair."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from uuid import UUID


def pair_key(a: UUID, b: UUID) -> str:
    """Order-insensitive key for a contact pair."""
    first, second = sorted((str(a), str(b)))
    return f"{first}:{second}"


@runtime_checkable
class CooldownCache(Protocol):
    """Best-effort TTL map keyed by contact pairs.

    Implementations may be process-local or shared between workers; callers
    must not rely on it for correctness.
    """

    def is_on_cooldown(self, a: UUID, b: UUID) -> bool: ...

    def set_cooldown(self, a: UUID, b: UUID) -> None: ...

    def sweep(self) -> int:
        """Drop expired entries and return how many were removed."""
        ...
