"""Connector payload adapter for signal ingest."""

from __future__ import annotations

from .schema import (
    GitHubEventPayload,
    NpmEventPayload,
    PostHogEventPayload,
    SignalPayload,
    WebhookEventPayload,
    parse_signal_payload,
)
from .translator import signal_type, to_signal_context

__all__ = [
    "GitHubEventPayload",
    "NpmEventPayload",
    "PostHogEventPayload",
    "SignalPayload",
    "WebhookEventPayload",
    "parse_signal_payload",
    "signal_type",
    "to_signal_context",
]
