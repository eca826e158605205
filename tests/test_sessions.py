"""Tests for per-profile browser sessions, using a fake browser."""
import pytest

from daee_e2e import sessions
from daee_e2e.auth.profiles import UserProfile
from daee_e2e.sessions import ANONYMOUS, ProfileSessionManager

pytestmark = pytest.mark.asyncio


class FakeContext:
    def __init__(self, options, fail_on_close=False):
        self.options = options
        self.timeout = None
        self.closed = False
        self.fail_on_close = fail_on_close

    def set_default_timeout(self, timeout):
        self.timeout = timeout

    async def new_page(self):
        return object()

    async def close(self):
        if self.fail_on_close:
            raise RuntimeError("browser has been closed")
        self.closed = True


class FakeBrowser:
    def __init__(self):
        self.contexts = []

    async def new_context(self, **options):
        context = FakeContext(options)
        self.contexts.append(context)
        return context


@pytest.fixture
def browser():
    return FakeBrowser()


@pytest.fixture
def manager(browser):
    return ProfileSessionManager(browser, base_url="https://daee.example", timeout=5000)


@pytest.fixture
def iacs_md(tmp_path, monkeypatch):
    profile = UserProfile(
        id="iacs-md",
        email="md@iacs.example",
        password="pw",
        totp_secret="JBSWY3DPEHPK3PXP",
        tenant="IACS",
        role="Managing Director",
        display_name="IACS MD User",
        storage_state_path=tmp_path / "iacs-md.json",
    )
    monkeypatch.setattr(sessions, "get_user_profile", lambda profile_id: profile)
    return profile


class TestProfileSessions:
    async def test_loads_storage_state(self, manager, browser, iacs_md):
        iacs_md.storage_state_path.write_text('{"cookies": [], "origins": []}' + " " * 200)

        handle = await manager.profile_session("iacs-md")

        assert handle.authenticated
        assert handle.email == "md@iacs.example"
        assert handle.metadata == {"tenant": "IACS", "role": "Managing Director"}
        options = browser.contexts[0].options
        assert options["storage_state"] == str(iacs_md.storage_state_path)
        assert options["base_url"] == "https://daee.example"
        assert options["locale"] == "en-IN"
        assert browser.contexts[0].timeout == 5000

    async def test_session_is_reused(self, manager, browser, iacs_md):
        iacs_md.storage_state_path.write_text("x" * 500)
        first = await manager.profile_session("iacs-md")
        second = await manager.session_for("iacs-md")
        assert first is second
        assert len(browser.contexts) == 1

    async def test_missing_artifact(self, manager, iacs_md):
        with pytest.raises(FileNotFoundError, match="daee-auth-setup"):
            await manager.profile_session("iacs-md")

    async def test_truncated_artifact_is_rejected(self, manager, iacs_md):
        iacs_md.storage_state_path.write_text("{}")
        with pytest.raises(FileNotFoundError):
            await manager.profile_session("iacs-md")


class TestAnonymousSessions:
    async def test_no_storage_state(self, manager, browser):
        handle = await manager.session_for(None)
        assert handle.profile_id == ANONYMOUS
        assert not handle.authenticated
        assert "storage_state" not in browser.contexts[0].options

    async def test_isolated_from_profile_sessions(self, manager, browser, iacs_md):
        iacs_md.storage_state_path.write_text("x" * 500)
        md = await manager.profile_session("iacs-md")
        guest = await manager.session_for(ANONYMOUS)
        assert md.context is not guest.context
        assert sorted(manager.list_sessions()) == [ANONYMOUS, "iacs-md"]


class TestLifecycle:
    async def test_duplicate_session_id(self, manager):
        await manager.create_session("one", ANONYMOUS)
        with pytest.raises(ValueError):
            await manager.create_session("one", ANONYMOUS)

    async def test_close_all(self, browser):
        async with ProfileSessionManager(browser, base_url="https://daee.example") as manager:
            await manager.create_session("one", ANONYMOUS)
            await manager.create_session("two", ANONYMOUS)
            assert manager.session_count == 2
        assert manager.session_count == 0
        assert all(context.closed for context in browser.contexts)

    async def test_close_errors_are_logged(self, manager, browser, caplog):
        await manager.create_session("one", ANONYMOUS)
        browser.contexts[0].fail_on_close = True
        await manager.close_session("one")
        assert manager.get_session("one") is None
        assert "Error closing session one" in caplog.text
