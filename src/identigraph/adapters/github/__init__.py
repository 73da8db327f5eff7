"""GitHub profile adapter."""

from __future__ import annotations

from .client import GitHubAPIError, GitHubClient
from .schema import GitHubUser
from .translator import translate_user

__all__ = [
    "GitHubAPIError",
    "GitHubClient",
    "GitHubUser",
    "translate_user",
]
