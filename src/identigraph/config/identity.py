"""Tunable thresholds and limits for identity resolution and auto-merge."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .env import env_float, env_int
from .errors import ConfigurationError

DEFAULT_AUTO_MERGE_THRESHOLD: Final[float] = 0.8
DEFAULT_COOLDOWN_SECONDS: Final[float] = 24 * 60 * 60
DEFAULT_COOLDOWN_SWEEP_SECONDS: Final[float] = 60 * 60
DEFAULT_HISTORY_LIMIT: Final[int] = 100
DEFAULT_FUZZY_COMPANY_LIMIT: Final[int] = 500
DEFAULT_FUZZY_COMPANY_THRESHOLD: Final[float] = 0.7
DEFAULT_DUPLICATE_GROUP_LIMIT: Final[int] = 50


@dataclass(frozen=True, slots=True)
class IdentityConfig:
    auto_merge_threshold: float = DEFAULT_AUTO_MERGE_THRESHOLD
    cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS
    cooldown_sweep_seconds: float = DEFAULT_COOLDOWN_SWEEP_SECONDS
    history_limit: int = DEFAULT_HISTORY_LIMIT
    fuzzy_company_limit: int = DEFAULT_FUZZY_COMPANY_LIMIT
    fuzzy_company_threshold: float = DEFAULT_FUZZY_COMPANY_THRESHOLD
    duplicate_group_limit: int = DEFAULT_DUPLICATE_GROUP_LIMIT

    def __post_init__(self) -> None:
        for name in ("auto_merge_threshold", "fuzzy_company_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must be within [0, 1], got {value}")
        for name in ("history_limit", "fuzzy_company_limit", "duplicate_group_limit"):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"{name} must be positive")
        if self.cooldown_seconds < 0 or self.cooldown_sweep_seconds <= 0:
            raise ConfigurationError("cooldown durations must be positive")


def get_identity_config() -> IdentityConfig:
    return IdentityConfig(
        auto_merge_threshold=env_float(
            "IDENTIGRAPH_AUTO_MERGE_THRESHOLD", DEFAULT_AUTO_MERGE_THRESHOLD
        ),
        cooldown_seconds=env_float("IDENTIGRAPH_COOLDOWN_SECONDS", DEFAULT_COOLDOWN_SECONDS),
        cooldown_sweep_seconds=env_float(
            "IDENTIGRAPH_COOLDOWN_SWEEP_SECONDS", DEFAULT_COOLDOWN_SWEEP_SECONDS
        ),
        history_limit=env_int("IDENTIGRAPH_HISTORY_LIMIT", DEFAULT_HISTORY_LIMIT),
        fuzzy_company_limit=env_int(
            "IDENTIGRAPH_FUZZY_COMPANY_LIMIT", DEFAULT_FUZZY_COMPANY_LIMIT
        ),
        fuzzy_company_threshold=env_float(
            "IDENTIGRAPH_FUZZY_COMPANY_THRESHOLD", DEFAULT_FUZZY_COMPANY_THRESHOLD
        ),
        duplicate_group_limit=env_int(
            "IDENTIGRAPH_DUPLICATE_GROUP_LIMIT", DEFAULT_DUPLICATE_GROUP_LIMIT
        ),
    )
