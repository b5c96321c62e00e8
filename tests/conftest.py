"""Shared fixtures: isolated settings per test."""
from __future__ import annotations

import pytest


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """No real credentials, no state files outside tmp_path."""
    for key in (
        "OPENAI_API_KEY",
        "ANTHROPIC_API_KEY",
        "CLOUDFLARE_ACCOUNT_ID",
        "CLOUDFLARE_API_TOKEN",
        "DOCUMENTS_PATH",
        "LOG_FILE",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("AI_PROVIDER", "openai")
    monkeypatch.setenv("STATE_SAVE_ENABLED", "false")
    monkeypatch.setenv("STATE_DIR", str(tmp_path / "state"))
    return tmp_path
