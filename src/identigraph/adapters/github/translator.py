"""Translate GitHub payloads into domain profile records."""

from __future__ import annotations

from typing import TYPE_CHECKING

from identigraph.domain.ports import GitHubProfile

if TYPE_CHECKING:
    from .schema import GitHubUser


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def translate_user(user: GitHubUser) -> GitHubProfile:
    return GitHubProfile(
        login=user.login,
        name=_clean(user.name),
        company=_clean(user.company),
        email=_clean(user.email),
        avatar_url=_clean(user.avatar_url),
        twitter_username=_clean(user.twitter_username),
        blog=_clean(user.blog),
        location=_clean(user.location),
    )
