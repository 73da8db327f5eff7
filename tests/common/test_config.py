from __future__ import annotations

import os

import pytest

from identigraph.config import (
    ConfigurationError,
    IdentityConfig,
    MissingConfigurationError,
    get_github_config,
    get_identity_config,
    require_env_vars,
)


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    result = require_env_vars(["EXAMPLE_VAR"])

    assert result["EXAMPLE_VAR"] == "value"


def test_require_env_vars_lists_every_missing_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_B", raising=False)
    monkeypatch.setenv("MISSING_A", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_B", "MISSING_A"])

    assert "MISSING_A, MISSING_B" in str(exc.value)


def test_identity_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name.startswith("IDENTIGRAPH_"):
            monkeypatch.delenv(name)

    assert get_identity_config() == IdentityConfig()


def test_identity_config_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("IDENTIGRAPH_AUTO_MERGE_THRESHOLD", "0.9")
    monkeypatch.setenv("IDENTIGRAPH_COOLDOWN_SECONDS", "600")
    monkeypatch.setenv("IDENTIGRAPH_HISTORY_LIMIT", "25")
    monkeypatch.setenv("IDENTIGRAPH_DUPLICATE_GROUP_LIMIT", " ")

    config = get_identity_config()

    assert config.auto_merge_threshold == pytest.approx(0.9)
    assert config.cooldown_seconds == pytest.approx(600)
    assert config.history_limit == 25
    assert config.duplicate_group_limit == IdentityConfig().duplicate_group_limit


@pytest.mark.parametrize(
    ("name", "raw"),
    [
        ("IDENTIGRAPH_AUTO_MERGE_THRESHOLD", "high"),
        ("IDENTIGRAPH_HISTORY_LIMIT", "2.5"),
        ("IDENTIGRAPH_AUTO_MERGE_THRESHOLD", "1.5"),
        ("IDENTIGRAPH_FUZZY_COMPANY_LIMIT", "0"),
        ("IDENTIGRAPH_COOLDOWN_SWEEP_SECONDS", "0"),
    ],
)
def test_identity_config_rejects_bad_values(
    monkeypatch: pytest.MonkeyPatch, name: str, raw: str
) -> None:
    monkeypatch.setenv(name, raw)

    with pytest.raises(ConfigurationError):
        get_identity_config()


def test_github_config_uses_token_and_base_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_example")
    monkeypatch.setenv("GITHUB_API_URL", "https://github.example/api/v3/")

    config = get_github_config()

    assert config.token == "ghp_example"  # noqa: S105
    assert config.resilience.base_url == "https://github.example/api/v3/"
    headers = dict(config.resilience.default_headers or {})
    assert headers["Authorization"] == "Bearer ghp_example"
    assert headers["Accept"] == "application/vnd.github+json"


def test_github_config_without_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("GITHUB_API_URL", raising=False)

    config = get_github_config()

    assert config.token is None
    assert config.resilience.base_url == "https://api.github.com"
    assert "Authorization" not in dict(config.resilience.default_headers or {})
