from __future__ import annotations

from collections.abc import Callable  # noqa: TC003

import httpx
import pytest

from identigraph.adapters.github import GitHubAPIError, GitHubClient, GitHubUser, translate_user
from identigraph.adapters.http_resilience import ResilientClient
from identigraph.config import GitHubConfig, ResilienceConfig
from identigraph.domain.ports import GitHubProfile, ProfileLookupError

OCTOCAT = {
    "login": "octocat",
    "id": 583231,
    "type": "User",
    "name": " The Octocat ",
    "company": "@github",
    "email": "",
    "avatar_url": "https://avatars.githubusercontent.com/u/583231?v=4",
    "twitter_username": None,
    "blog": "https://github.blog",
    "location": "San Francisco",
    "html_url": "https://github.com/octocat",
    "followers": 9000,
}


def _make_client_factory(
    handler: Callable[[httpx.Request], httpx.Response],
) -> Callable[[ResilienceConfig], ResilientClient]:
    async def async_handler(request: httpx.Request) -> httpx.Response:
        return handler(request)

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        client = ResilientClient(resilience)
        client._client = httpx.AsyncClient(  # noqa: SLF001  # type: ignore[reportPrivateUsage]
            base_url=resilience.base_url or "",
            transport=httpx.MockTransport(async_handler),
        )
        return client

    return factory


@pytest.fixture
def github_config() -> GitHubConfig:
    return GitHubConfig(
        resilience=ResilienceConfig(
            name="github", base_url="https://api.github.test/", cache=None
        )
    )


def test_fetch_profile_translates_user(github_config: GitHubConfig) -> None:
    requested: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.path)
        return httpx.Response(200, json=OCTOCAT)

    client = GitHubClient(config=github_config, client_factory=_make_client_factory(handler))

    profile = client.fetch_profile(" @octocat ")

    assert requested == ["/users/octocat"]
    assert profile == GitHubProfile(
        login="octocat",
        name="The Octocat",
        company="@github",
        email=None,
        avatar_url="https://avatars.githubusercontent.com/u/583231?v=4",
        twitter_username=None,
        blog="https://github.blog",
        location="San Francisco",
    )


def test_missing_user_is_none(github_config: GitHubConfig) -> None:
    client = GitHubClient(
        config=github_config,
        client_factory=_make_client_factory(lambda _: httpx.Response(404, json={})),
    )

    assert client.fetch_profile("ghost-user") is None


def test_blank_login_skips_the_request(github_config: GitHubConfig) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError(f"unexpected request to {request.url}")

    client = GitHubClient(config=github_config, client_factory=_make_client_factory(handler))

    assert client.fetch_user(" @ ") is None


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(403, json={"message": "API rate limit exceeded"}),
        httpx.Response(200, text="<html>maintenance</html>"),
        httpx.Response(200, json=["not", "an", "object"]),
        httpx.Response(200, json={"login": "octocat"}),
    ],
    ids=["http-error", "non-json", "not-an-object", "missing-id"],
)
def test_bad_responses_raise_lookup_errors(
    github_config: GitHubConfig, response: httpx.Response
) -> None:
    client = GitHubClient(
        config=github_config, client_factory=_make_client_factory(lambda _: response)
    )

    with pytest.raises(GitHubAPIError):
        client.fetch_profile("octocat")


def test_transport_failure_is_a_lookup_error(github_config: GitHubConfig) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = GitHubClient(config=github_config, client_factory=_make_client_factory(handler))

    with pytest.raises(ProfileLookupError):
        client.fetch_profile("octocat")


def test_missing_base_url_is_rejected() -> None:
    client = GitHubClient(
        config=GitHubConfig(resilience=ResilienceConfig(name="github", cache=None))
    )

    with pytest.raises(GitHubAPIError, match="base_url"):
        client.fetch_user("octocat")


def test_translate_user_blanks_become_none() -> None:
    user = GitHubUser.model_validate(
        {"login": "mona", "id": 1, "name": "   ", "company": " Acme ", "location": ""}
    )

    profile = translate_user(user)

    assert profile.name is None
    assert profile.company == "Acme"
    assert profile.location is None
