"""Inbound signal payloads, one model per connector, tagged by ``source``."""

from __future__ import annotations

import logging
from typing import Annotated, Any, ClassVar, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

log = logging.getLogger(__name__)


class SignalPayloadModel(BaseModel):
    model_config = ConfigDict(extra="allow")
    _logged_extra_keys: ClassVar[set[str]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        new_keys = set(extras).difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.info(
            "Signal %s: unmodeled keys: %s",
            type(self).__name__,
            ", ".join(sorted(new_keys)),
        )

    @property
    def extra(self) -> dict[str, Any]:
        return dict(self.__pydantic_extra__ or {})


class GitHubEventPayload(SignalPayloadModel):
    _logged_extra_keys: ClassVar[set[str]] = set()

    source: Literal["github"] = "github"
    event: str
    repository: str | None = None
    sender_login: str | None = None
    sender_avatar: str | None = None
    sender_email: str | None = None
    sender_company: str | None = None


class NpmEventPayload(SignalPayloadModel):
    _logged_extra_keys: ClassVar[set[str]] = set()

    source: Literal["npm"] = "npm"
    event: str = "publish"
    package: str
    version: str | None = None
    maintainer: str | None = None
    maintainer_email: str | None = None


class PostHogEventPayload(SignalPayloadModel):
    _logged_extra_keys: ClassVar[set[str]] = set()

    source: Literal["posthog"] = "posthog"
    event: str
    distinct_id: str
    properties: dict[str, Any] = Field(default_factory=dict[str, Any])


class WebhookEventPayload(SignalPayloadModel):
    _logged_extra_keys: ClassVar[set[str]] = set()

    source: Literal["webhook"] = "webhook"
    type: str
    actor_id: UUID | None = None
    account_id: UUID | None = None
    anonymous_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict[str, Any])


SignalPayload = Annotated[
    GitHubEventPayload | NpmEventPayload | PostHogEventPayload | WebhookEventPayload,
    Field(discriminator="source"),
]

SIGNAL_PAYLOAD_ADAPTER: TypeAdapter[SignalPayload] = TypeAdapter(SignalPayload)


def parse_signal_payload(raw: object) -> SignalPayload:
    """Validate a decoded JSON object into its connector-specific model."""
    return SIGNAL_PAYLOAD_ADAPTER.validate_python(raw)
