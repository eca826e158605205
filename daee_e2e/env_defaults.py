"""Read fallback values from the suite's `.env.local` file.

The file lives next to the auth artifacts (``e2e/.auth/.env.local`` unless
``E2E_ENV_FILE`` points elsewhere) and holds the per-profile credentials for
local runs. Real environment variables always win over values from the file.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Dict, Mapping

REPO_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_ENV_FILE = REPO_ROOT / "e2e" / ".auth" / ".env.local"


@lru_cache(maxsize=4)
def _load_env_file(path: str) -> Dict[str, str]:
    env_file = Path(path)
    if not env_file.exists():
        return {}

    defaults: Dict[str, str] = {}
    for raw in env_file.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        if line.startswith("export "):
            line = line[len("export "):]
        key, value = line.split("=", 1)
        value = value.strip()
        if len(value) >= 2 and value[0] in ('"', "'") and value[-1] == value[0]:
            value = value[1:-1]
        defaults[key.strip()] = value
    return defaults


def env_file_path() -> Path:
    return Path(os.getenv("E2E_ENV_FILE") or DEFAULT_ENV_FILE)


def get_env_default(key: str) -> str | None:
    return _load_env_file(str(env_file_path())).get(key)


def getenv(key: str, default: str | None = None, environ: Mapping[str, str] | None = None) -> str | None:
    """Look a key up in the environment, then in `.env.local`, then use ``default``.

    Empty strings count as unset so that blank placeholders in the defaults
    file do not mask a missing credential.
    """
    source = os.environ if environ is None else environ
    value = source.get(key)
    if value:
        return value
    if environ is None:
        value = get_env_default(key)
        if value:
            return value
    return default


def clear_cache() -> None:
    _load_env_file.cache_clear()
