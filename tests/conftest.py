"""Shared fixtures for the SDK test suite."""

import pytest


@pytest.fixture(autouse=True)
def clean_arkiv_env(monkeypatch):
    """Keep ARKIV_* variables from the host out of every test."""
    for name in ("ARKIV_RPC_URL", "ARKIV_WS_URL", "ARKIV_PRIVATE_KEY", "ARKIV_REQUEST_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
