"""GitHub API configuration values."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy

DEFAULT_GITHUB_BASE_URL = "https://api.github.com"
DEFAULT_GITHUB_TIMEOUT_SECONDS = 5.0
GITHUB_API_VERSION = "2022-11-28"


@dataclass(frozen=True, slots=True)
class GitHubConfig:
    resilience: ResilienceConfig
    token: str | None = None


def get_github_config() -> GitHubConfig:
    token = os.getenv("GITHUB_TOKEN") or None
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": GITHUB_API_VERSION,
        "User-Agent": "identigraph",
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"

    resilience = ResilienceConfig(
        name="github",
        base_url=os.getenv("GITHUB_API_URL") or DEFAULT_GITHUB_BASE_URL,
        timeout_seconds=DEFAULT_GITHUB_TIMEOUT_SECONDS,
        ratelimit=RateLimit(max_calls=1, per_seconds=1.0),
        retry=RetryPolicy(total=2),
        cache=CacheConfig(enabled=True, backend="memory", default_ttl_seconds=3600.0),
        default_headers=headers,
    )
    return GitHubConfig(resilience=resilience, token=token)
