"""Port for looking up public developer profiles during enrichment."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


class ProfileLookupError(RuntimeError):
    """Raised when a profile source could not answer (network, rate limit, bad payload)."""


@dataclass(frozen=True, slots=True)
class GitHubProfile:
    login: str
    name: str | None = None
    company: str | None = None
    email: str | None = None
    avatar_url: str | None = None
    twitter_username: str | None = None
    blog: str | None = None
    location: str | None = None


@runtime_checkable
class GitHubProfileSource(Protocol):
    def fetch_profile(self, login: str) -> GitHubProfile | None:
        """Return the public profile for ``login`` or ``None`` when it does not exist."""
        ...
