"""Shared fixtures for the unit tests (no browser, no network)."""
import anyio
import pytest


class FakeClock:
    """Stands in for anyio's clock so waits finish instantly and deterministically."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def current_time(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock(monkeypatch):
    """Patch anyio.sleep/current_time; ``clock.sleeps`` records every wait in seconds."""
    fake = FakeClock()
    monkeypatch.setattr(anyio, "current_time", fake.current_time)
    monkeypatch.setattr(anyio, "sleep", fake.sleep)
    return fake


@pytest.fixture
def iacs_md_env():
    """Complete credentials for the iacs-md profile."""
    return {
        "IACS_MD_USER_EMAIL": "md@iacs.example",
        "IACS_MD_USER_PASSWORD": "s3cret!",
        "IACS_MD_USER_TOTP_SECRET": "JBSWY3DPEHPK3PXP",
    }
