"""Shared configuration for the DAEE end-to-end suite.

Values come from the process environment first and from ``.env.local``
(see :mod:`daee_e2e.env_defaults`) second:

- ``TEST_BASE_URL``: deployment under test (default http://localhost:3000)
- ``HEADED`` / ``PLAYWRIGHT_HEADLESS``: browser visibility (headless by default)
- ``E2E_BROWSER``: chromium, firefox or webkit
- ``E2E_AUTH_DIR``: where session artifacts are written (default e2e/.auth)
- ``E2E_DEFAULT_PROFILE``: profile used by scenarios without a profile tag
"""
from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Mapping, Optional
from urllib.parse import urljoin, urlparse

from daee_e2e.env_defaults import REPO_ROOT, getenv

TRUTHY = {"1", "true", "yes", "on"}

DEFAULT_BASE_URL = "http://localhost:3000"
DEFAULT_TIMEOUT_MS = 30000
DEFAULT_MIN_AUTH_STATE_BYTES = 100


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() in TRUTHY


class E2EConfig:
    """Configuration snapshot for one test process.

    ``environ`` is only passed by unit tests; normal runs read ``os.environ``
    together with the ``.env.local`` defaults.
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None) -> None:
        self._environ = environ

        self.base_url: str = self.get("TEST_BASE_URL", DEFAULT_BASE_URL).rstrip("/")

        headless_env = self.get("PLAYWRIGHT_HEADLESS")
        if self.get("HEADED"):
            self.headless = not _flag(self.get("HEADED"))
        elif headless_env:
            self.headless = _flag(headless_env)
        else:
            self.headless = True

        self.browser_type: str = self.get("E2E_BROWSER", "chromium")
        if self.browser_type not in {"chromium", "firefox", "webkit"}:
            print(f"[CONFIG] WARNING: unknown E2E_BROWSER={self.browser_type!r}, using chromium")
            self.browser_type = "chromium"

        self.timeout_ms: int = int(self.get("E2E_TIMEOUT_MS", str(DEFAULT_TIMEOUT_MS)))
        self.min_auth_state_bytes: int = int(
            self.get("E2E_MIN_AUTH_STATE_BYTES", str(DEFAULT_MIN_AUTH_STATE_BYTES))
        )

        auth_dir = Path(self.get("E2E_AUTH_DIR", "e2e/.auth"))
        self.auth_dir: Path = auth_dir if auth_dir.is_absolute() else REPO_ROOT / auth_dir

        screenshot_dir = Path(self.get("E2E_SCREENSHOT_DIR", "screenshots"))
        self.screenshot_dir: Path = screenshot_dir if screenshot_dir.is_absolute() else REPO_ROOT / screenshot_dir

        self.default_profile: str = self.get("E2E_DEFAULT_PROFILE", "iacs-md")
        self.auth_profiles: Optional[str] = self.get("TEST_AUTH_PROFILES")
        self.skip_auth_setup: bool = _flag(self.get("E2E_SKIP_AUTH_SETUP"))
        self.log_level: str = self.get("E2E_LOG_LEVEL", "INFO").upper()

    def get(self, key: str, default: str | None = None) -> str | None:
        return getenv(key, default, environ=self._environ)

    # ---- utility helpers --------------------------------------------------------
    def url(self, path: str) -> str:
        """Return an absolute URL for the provided path."""
        if urlparse(path).scheme:
            return path
        return urljoin(self.base_url + "/", path.lstrip("/"))

    def auth_state_path(self, name: str) -> Path:
        """Session artifact location for a profile id or artifact file name."""
        filename = name if name.endswith(".json") else f"{name}.json"
        return self.auth_dir / filename

    @contextmanager
    def use_base_url(self, base_url: str) -> Iterator[str]:
        """Temporarily point the suite at another deployment."""
        previous = self.base_url
        self.base_url = base_url.rstrip("/")
        try:
            yield self.base_url
        finally:
            self.base_url = previous


# Singleton instance - initialized on first import
settings = E2EConfig()
