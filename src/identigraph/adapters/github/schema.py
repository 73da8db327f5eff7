"""GitHub REST response schemas used for contact enrichment."""

from __future__ import annotations

import logging
from typing import ClassVar

from pydantic import BaseModel, ConfigDict

log = logging.getLogger(__name__)


class GitHubBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow")
    _logged_extra_keys: ClassVar[set[str]] = set()
    # fields GitHub always sends that enrichment never reads
    _ignored_keys: ClassVar[frozenset[str]] = frozenset()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        new_keys = set(extras).difference(self._logged_extra_keys, self._ignored_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.debug(
            "GitHub %s: unmodeled keys: %s",
            type(self).__name__,
            ", ".join(sorted(new_keys)),
        )


class GitHubUser(GitHubBaseModel):
    """Subset of ``GET /users/{login}``."""

    _ignored_keys: ClassVar[frozenset[str]] = frozenset(
        {
            "node_id",
            "gravatar_id",
            "url",
            "html_url",
            "followers_url",
            "following_url",
            "gists_url",
            "starred_url",
            "subscriptions_url",
            "organizations_url",
            "repos_url",
            "events_url",
            "received_events_url",
            "site_admin",
            "user_view_type",
            "hireable",
            "bio",
            "public_repos",
            "public_gists",
            "followers",
            "following",
            "created_at",
            "updated_at",
        }
    )

    login: str
    id: int
    type: str = "User"
    name: str | None = None
    company: str | None = None
    email: str | None = None
    avatar_url: str | None = None
    twitter_username: str | None = None
    blog: str | None = None
    location: str | None = None
