"""Error taxonomy shared by the engines, the auth bootstrap and the helpers."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence


class E2EError(Exception):
    """Base class for every error raised by the suite itself."""


@dataclass
class PollingTimeoutError(E2EError):
    """A polled condition never became true within its timeout."""

    description: str
    timeout: float
    elapsed: float
    attempts: int

    def __str__(self) -> str:
        return (
            f"Timeout waiting for {self.description} after {self.timeout:g}ms "
            f"({self.attempts} attempts, {self.elapsed:.0f}ms elapsed)"
        )


@dataclass
class RetryExhaustedError(E2EError):
    """Every allowed attempt of a retried operation failed."""

    description: str
    attempts: int
    last_error: BaseException

    def __str__(self) -> str:
        return f"{self.description} failed after {self.attempts} attempts. Last error: {self.last_error}"


@dataclass
class ConditionNotMetError(E2EError):
    """Raised by retry_until when the checked condition is still false."""

    description: str

    def __str__(self) -> str:
        return f"Condition not met: {self.description}"


@dataclass
class ConfigurationIncomplete(E2EError):
    """Required environment configuration is missing."""

    subject: str
    missing: Sequence[str] = field(default_factory=list)

    def __str__(self) -> str:
        missing = ", ".join(self.missing) or "unknown"
        return f"Configuration incomplete for {self.subject}: missing {missing}"


@dataclass
class ProfileNotFoundError(E2EError, KeyError):
    """A user profile id is unknown, or declared but disabled."""

    profile_id: str
    available: List[str] = field(default_factory=list)
    disabled: bool = False

    def __str__(self) -> str:
        if self.disabled:
            return (
                f"User profile '{self.profile_id}' is disabled in the registry. "
                f"Available profiles: {', '.join(self.available)}"
            )
        return f"User profile '{self.profile_id}' not found. Available profiles: {', '.join(self.available)}"


@dataclass
class LoginStepFailure(E2EError):
    """An expected login control did not appear within its timeout."""

    profile_id: str
    step: str
    message: str
    screenshot: Optional[str] = None

    def __str__(self) -> str:
        text = f"Login failed for '{self.profile_id}' at {self.step}: {self.message}"
        if self.screenshot:
            text += f" (screenshot: {self.screenshot})"
        return text


@dataclass
class ArtifactWriteFailure(E2EError):
    """The persisted session artifact is missing or implausibly small."""

    profile_id: str
    path: str
    size: int
    minimum: int

    def __str__(self) -> str:
        return (
            f"Auth state for '{self.profile_id}' at {self.path} is {self.size} bytes "
            f"(expected at least {self.minimum})"
        )


@dataclass
class BootstrapFailed(E2EError):
    """No profile could be authenticated."""

    failed: List[str]
    skipped: List[str]

    def __str__(self) -> str:
        return (
            "Authentication setup failed for all profiles "
            f"(failed: {', '.join(self.failed) or '-'}; skipped: {', '.join(self.skipped) or '-'})"
        )


@dataclass
class ReadOnlyViolation(E2EError):
    """A non-SELECT statement was sent to the read-only database helper."""

    statement: str

    def __str__(self) -> str:
        return f"Only SELECT queries are allowed in tests: {self.statement[:80]!r}"
