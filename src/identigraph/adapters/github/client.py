"""GitHub REST API client."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from identigraph.adapters.http_resilience import ResilientClient
from identigraph.domain.ports import ProfileLookupError

from .schema import GitHubUser
from .translator import translate_user

if TYPE_CHECKING:
    from collections.abc import Callable

    from identigraph.config import GitHubConfig, ResilienceConfig
    from identigraph.domain.ports import GitHubProfile

log = getLogger(__name__)


class GitHubAPIError(ProfileLookupError):
    """Raised when the GitHub API fails or returns an unexpected response."""


class GitHubClient:
    """Looks up public GitHub user profiles."""

    def __init__(
        self,
        *,
        config: GitHubConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._resilience = config.resilience
        self._client_factory = client_factory or ResilientClient

    def fetch_user(self, login: str) -> GitHubUser | None:
        return asyncio.run(self._fetch_user_async(login))

    def fetch_profile(self, login: str) -> GitHubProfile | None:
        user = self.fetch_user(login)
        if user is None:
            return None
        return translate_user(user)

    async def _fetch_user_async(self, login: str) -> GitHubUser | None:
        if self._resilience.base_url is None:
            raise GitHubAPIError("Missing GitHub base_url in resilience configuration")
        handle = login.strip().lstrip("@")
        if not handle:
            return None

        async with self._client_factory(self._resilience) as client:
            try:
                response = await client.get(f"users/{quote(handle, safe='')}")
            except httpx.HTTPError as exc:
                raise GitHubAPIError(f"GitHub request for {handle} failed: {exc}") from exc

        if response.status_code == httpx.codes.NOT_FOUND:
            log.debug("GitHub user %s does not exist", handle)
            return None
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise GitHubAPIError(
                f"GitHub returned {response.status_code} for user {handle}"
            ) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise GitHubAPIError(f"GitHub returned a non-JSON body for user {handle}") from exc
        if not isinstance(payload, dict):
            raise GitHubAPIError("Unexpected GitHub user payload")
        try:
            return GitHubUser.model_validate(payload)
        except ValidationError as exc:
            raise GitHubAPIError(f"Malformed GitHub user payload for {handle}") from exc
