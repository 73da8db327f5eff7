"""Map connector payloads onto the signal resolution input."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from identigraph.domain.identity.signals import (
    GITHUB_PREFIX,
    MAINTAINER_EMAIL_KEY,
    NPM_PREFIX,
    SENDER_AVATAR_KEY,
    SENDER_LOGIN_KEY,
    SignalContext,
)

from .schema import (
    GitHubEventPayload,
    NpmEventPayload,
    PostHogEventPayload,
    WebhookEventPayload,
)

if TYPE_CHECKING:
    from .schema import SignalPayload

# PostHog person properties that may carry an email address
_POSTHOG_EMAIL_KEYS = ("$email", "email")


def signal_type(payload: SignalPayload) -> str:
    """Stored ``Signal.type`` for a payload, e.g. ``github.star``."""
    if isinstance(payload, WebhookEventPayload):
        return payload.type
    return f"{payload.source}.{payload.event}"


def to_signal_context(payload: SignalPayload) -> SignalContext:
    if isinstance(payload, GitHubEventPayload):
        return _from_github(payload)
    if isinstance(payload, NpmEventPayload):
        return _from_npm(payload)
    if isinstance(payload, PostHogEventPayload):
        return _from_posthog(payload)
    return SignalContext(
        actor_id=payload.actor_id,
        account_id=payload.account_id,
        anonymous_id=payload.anonymous_id,
        metadata={**payload.extra, **payload.metadata},
    )


def _from_github(payload: GitHubEventPayload) -> SignalContext:
    metadata: dict[str, Any] = {**payload.extra}
    if payload.sender_login:
        metadata[SENDER_LOGIN_KEY] = payload.sender_login
    if payload.sender_avatar:
        metadata[SENDER_AVATAR_KEY] = payload.sender_avatar
    if payload.repository:
        metadata["repository"] = payload.repository
    anonymous_id = f"{GITHUB_PREFIX}{payload.sender_login}" if payload.sender_login else None
    return SignalContext(anonymous_id=anonymous_id, metadata=metadata)


def _from_npm(payload: NpmEventPayload) -> SignalContext:
    metadata: dict[str, Any] = {**payload.extra, "package": payload.package}
    if payload.maintainer_email:
        metadata[MAINTAINER_EMAIL_KEY] = payload.maintainer_email
    if payload.maintainer:
        anonymous_id: str | None = f"{NPM_PREFIX}{payload.maintainer}"
    else:
        anonymous_id = payload.maintainer_email
    return SignalContext(anonymous_id=anonymous_id, metadata=metadata)


def _from_posthog(payload: PostHogEventPayload) -> SignalContext:
    anonymous_id = payload.distinct_id
    if "@" not in anonymous_id:
        for key in _POSTHOG_EMAIL_KEYS:
            value = payload.properties.get(key)
            if isinstance(value, str) and "@" in value:
                anonymous_id = value
                break
    return SignalContext(
        anonymous_id=anonymous_id,
        metadata={**payload.extra, **payload.properties},
    )
