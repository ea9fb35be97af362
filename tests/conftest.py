"""
Shared fixtures: isolate configuration state between tests.
"""

import pytest

import pr_scorecard.config as config

_ENV_VARS = (
    "GH_TOKEN",
    "GITHUB_TOKEN",
    "GH_APP_ID",
    "GH_APP_PK",
    "PR_SCORECARD_QUIET",
    "PR_SCORECARD_CACHE_DIR",
    "PR_SCORECARD_CACHE_TTL",
    "PR_SCORECARD_CHECKPOINT_TTL",
    "PR_SCORECARD_REQUESTS_PER_MINUTE",
)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Reset module-level settings and point config lookups at a temp dir."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config, "PROJECT_ROOT", tmp_path)
    monkeypatch.setattr(config, "VERIFY_SSL", True)
    monkeypatch.setattr(config, "QUIET", False)
    monkeypatch.setattr(config, "_CACHE_DIR", None)
    monkeypatch.setattr(config, "_CACHE_TTL", None)
    monkeypatch.setattr(config, "_CHECKPOINT_TTL", None)
    monkeypatch.setattr(config, "_REQUESTS_PER_MINUTE", None)
    monkeypatch.setattr(config, "DEFAULT_CACHE_DIR", tmp_path / "default-cache")
    yield tmp_path
