"""
Scenario context shared by the step modules.

pytest-bdd steps are synchronous while the page objects are async, so every
browser call goes through the session's BlockingPortal (``ctx.run``). The
browser context itself is created lazily: the first step that touches
``ctx.page`` opens a session for the scenario's profile, unless an earlier
step ("I am logged in as ...") already picked one.
"""
from __future__ import annotations

import functools
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Type, TypeVar

from anyio.from_thread import BlockingPortal
from playwright.async_api import Page

from daee_e2e.pages.base import BasePage
from daee_e2e.sessions import ANONYMOUS, ProfileSessionManager, SessionHandle

logger = logging.getLogger(__name__)

T = TypeVar("T")
P = TypeVar("P", bound=BasePage)


class ScenarioContext:
    def __init__(self, portal: BlockingPortal, manager: ProfileSessionManager, profile_id: str) -> None:
        self.portal = portal
        self.manager = manager
        self.profile_id = profile_id
        self.session: Optional[SessionHandle] = None
        self.state: Dict[str, Any] = {}
        self._pages: Dict[type, BasePage] = {}

    def run(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Run a coroutine function on the browser event loop and return its result."""
        if kwargs:
            func = functools.partial(func, **kwargs)
        return self.portal.call(func, *args)

    def use_profile(self, profile_id: str) -> SessionHandle:
        """Switch the scenario to ``profile_id`` (``anonymous`` for no login)."""
        if self.session is not None and self.session.profile_id == profile_id:
            return self.session
        self.session = self.run(self.manager.session_for, profile_id)
        self.profile_id = profile_id
        self._pages.clear()
        logger.info("Scenario session: %s", self.session)
        return self.session

    @property
    def authenticated(self) -> bool:
        return self.profile_id != ANONYMOUS

    @property
    def page(self) -> Page:
        if self.session is None:
            self.use_profile(self.profile_id)
        return self.session.page

    def page_object(self, cls: Type[P]) -> P:
        """One page object instance per class for the current session."""
        if cls not in self._pages:
            self._pages[cls] = cls(self.page)
        return self._pages[cls]  # type: ignore[return-value]

    def close(self) -> None:
        self.run(self.manager.close_all)
        self.session = None
        self._pages.clear()
