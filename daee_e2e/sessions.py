"""
Per-profile browser sessions for scenarios.

Each session is its own Playwright BrowserContext, loaded with the storage
state the auth bootstrap saved for that profile, so sessions never share
cookies or local storage.

Usage:
    async with ProfileSessionManager(client.browser) as manager:
        md = await manager.profile_session("iacs-md")
        guest = await manager.anonymous_session()
        await md.page.goto("/o2c/indents")
        await guest.page.goto("/login")
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, TypedDict
import logging

from playwright.async_api import Browser, BrowserContext, Page

from daee_e2e.auth.profiles import UserProfile, get_user_profile
from daee_e2e.auth.storage_state import auth_state_exists
from daee_e2e.config import settings

logger = logging.getLogger(__name__)

ANONYMOUS = "anonymous"


class ViewportSize(TypedDict):
    width: int
    height: int


@dataclass
class SessionHandle:
    """Handle to one isolated browser session."""
    session_id: str
    context: BrowserContext
    page: Page
    profile_id: str  # profile id, or 'anonymous'
    email: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def authenticated(self) -> bool:
        return self.profile_id != ANONYMOUS

    def __repr__(self) -> str:
        return f"SessionHandle(id={self.session_id}, profile={self.profile_id}, user={self.email})"


class ProfileSessionManager:
    """Creates and tracks browser contexts keyed by profile."""

    DEFAULT_VIEWPORT: ViewportSize = {'width': 1280, 'height': 720}
    DEFAULT_LOCALE = 'en-IN'

    def __init__(
        self,
        browser: Browser,
        base_url: Optional[str] = None,
        viewport: Optional[ViewportSize] = None,
        locale: str = DEFAULT_LOCALE,
        timeout: Optional[int] = None,
    ):
        self.browser = browser
        self.base_url = base_url or settings.base_url
        self.viewport: ViewportSize = viewport or self.DEFAULT_VIEWPORT
        self.locale = locale
        self.timeout = settings.timeout_ms if timeout is None else timeout
        self.sessions: Dict[str, SessionHandle] = {}

    async def __aenter__(self) -> 'ProfileSessionManager':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close_all()

    async def create_session(
        self,
        session_id: str,
        profile_id: str,
        storage_state: Optional[str] = None,
    ) -> SessionHandle:
        """Open a new context (optionally preloaded with a storage state file)."""
        if session_id in self.sessions:
            raise ValueError(f"Session {session_id} already exists")

        options: Dict[str, Any] = {
            'viewport': self.viewport,
            'locale': self.locale,
            'base_url': self.base_url,
        }
        if storage_state:
            options['storage_state'] = storage_state
        context = await self.browser.new_context(**options)
        context.set_default_timeout(self.timeout)
        page = await context.new_page()

        handle = SessionHandle(session_id=session_id, context=context, page=page, profile_id=profile_id)
        self.sessions[session_id] = handle
        logger.debug("Created session: %s", handle)
        return handle

    async def profile_session(self, profile_id: str) -> SessionHandle:
        """
        Get or create the session for a profile.

        Raises FileNotFoundError when the profile has no usable session
        artifact; run ``daee-auth-setup`` first.
        """
        if profile_id not in self.sessions:
            profile: UserProfile = get_user_profile(profile_id)
            path = profile.storage_state_path
            if not auth_state_exists(path):
                raise FileNotFoundError(
                    f"No session artifact for profile '{profile_id}' at {path}; run daee-auth-setup"
                )
            handle = await self.create_session(profile_id, profile_id, storage_state=str(path))
            handle.email = profile.email
            handle.metadata['tenant'] = profile.tenant
            handle.metadata['role'] = profile.role
        return self.sessions[profile_id]

    async def anonymous_session(self) -> SessionHandle:
        """Get or create a session without any stored authentication."""
        if ANONYMOUS not in self.sessions:
            await self.create_session(ANONYMOUS, ANONYMOUS)
        return self.sessions[ANONYMOUS]

    async def session_for(self, profile_id: Optional[str]) -> SessionHandle:
        """``None`` or 'anonymous' yields the anonymous session."""
        if not profile_id or profile_id == ANONYMOUS:
            return await self.anonymous_session()
        return await self.profile_session(profile_id)

    def get_session(self, session_id: str) -> Optional[SessionHandle]:
        return self.sessions.get(session_id)

    async def close_session(self, session_id: str) -> None:
        """Close and forget a session; closing errors are logged, not raised."""
        handle = self.sessions.pop(session_id, None)
        if handle is None:
            return
        try:
            await handle.context.close()
            logger.debug("Closed session: %s", handle)
        except Exception as e:
            logger.warning("Error closing session %s: %s", session_id, e)

    async def close_all(self) -> None:
        for session_id in list(self.sessions):
            await self.close_session(session_id)

    @property
    def session_count(self) -> int:
        return len(self.sessions)

    def list_sessions(self) -> List[str]:
        return list(self.sessions)
