"""
Tests for the user profile registry and credential resolution.

Every test passes an explicit ``environ`` mapping, so neither the process
environment nor a local ``.env.local`` file can leak in.
"""
import logging

import pytest

from daee_e2e.auth.profiles import (
    PROFILE_REGISTRY,
    all_profile_ids,
    all_profiles,
    available_tenants,
    get_test_user,
    get_test_user_by_role,
    get_user_profile,
    has_profile,
    profiles_by_tenant,
    profiles_summary,
    profiles_to_authenticate,
    role_profile_id,
    validate_test_users,
)
from daee_e2e.errors import ConfigurationIncomplete, ProfileNotFoundError


class TestRegistry:
    def test_enabled_profiles(self):
        assert all_profile_ids() == ["super-admin", "iacs-md"]

    def test_disabled_profiles_are_hidden(self):
        disabled = [d.id for d in PROFILE_REGISTRY if not d.enabled]
        assert "demo-admin" in disabled
        assert not has_profile("demo-admin")

    def test_registry_ids_and_artifacts_are_unique(self):
        ids = [d.id for d in PROFILE_REGISTRY]
        files = [d.storage_state_file for d in PROFILE_REGISTRY]
        assert len(ids) == len(set(ids))
        assert len(files) == len(set(files))

    def test_role_names_map_to_profiles(self):
        assert role_profile_id("IACS MD User") == "iacs-md"
        with pytest.raises(ProfileNotFoundError):
            role_profile_id("Intern")

    def test_role_of_disabled_profile(self):
        with pytest.raises(ProfileNotFoundError) as excinfo:
            role_profile_id("Finance Manager")
        assert excinfo.value.disabled
        assert "iacs-finance-admin' is disabled" in str(excinfo.value)

    def test_disabled_profile_lookup_says_disabled(self):
        with pytest.raises(ProfileNotFoundError, match="is disabled"):
            get_user_profile("demo-admin", environ={})

    def test_available_tenants(self):
        assert available_tenants() == ["DAEE", "IACS"]


class TestGetUserProfile:
    def test_complete_profile(self, iacs_md_env):
        profile = get_user_profile("iacs-md", environ=iacs_md_env)
        assert profile.email == "md@iacs.example"
        assert profile.tenant == "IACS"
        assert profile.role == "Managing Director"
        assert profile.is_configured
        assert profile.storage_state_path.name == "iacs-md.json"

    def test_missing_variables_are_named(self, iacs_md_env):
        env = dict(iacs_md_env, IACS_MD_USER_TOTP_SECRET="")
        with pytest.raises(ConfigurationIncomplete) as excinfo:
            get_user_profile("iacs-md", environ=env)
        assert list(excinfo.value.missing) == ["IACS_MD_USER_TOTP_SECRET"]
        assert "IACS_MD_USER_TOTP_SECRET" in str(excinfo.value)

    def test_unknown_profile_lists_available(self):
        with pytest.raises(ProfileNotFoundError) as excinfo:
            get_user_profile("nobody", environ={})
        assert "super-admin" in str(excinfo.value)
        assert "iacs-md" in str(excinfo.value)

    def test_unknown_profile_is_a_key_error(self):
        with pytest.raises(KeyError):
            get_user_profile("nobody", environ={})

    def test_legacy_admin_variables(self, caplog):
        env = {
            "TEST_USER_ADMIN_EMAIL": "admin@daee.example",
            "TEST_USER_ADMIN_PASSWORD": "pw",
            "TEST_USER_ADMIN_TOTP_SECRET": "JBSWY3DPEHPK3PXP",
        }
        with caplog.at_level(logging.WARNING):
            profile = get_user_profile("super-admin", environ=env)
        assert profile.email == "admin@daee.example"
        assert "TEST_USER_ADMIN_EMAIL" in caplog.text

    def test_new_admin_variables_win_over_legacy(self):
        env = {
            "TEST_PRIMARY_ADMIN_EMAIL": "primary@daee.example",
            "TEST_PRIMARY_ADMIN_PASSWORD": "pw",
            "TEST_PRIMARY_ADMIN_TOTP_SECRET": "JBSWY3DPEHPK3PXP",
            "TEST_USER_ADMIN_EMAIL": "legacy@daee.example",
        }
        assert get_user_profile("super-admin", environ=env).email == "primary@daee.example"

    def test_permissions(self, iacs_md_env):
        profile = get_user_profile("iacs-md", environ=iacs_md_env)
        assert profile.has_permission("o2c:create")
        assert profile.has_permission("finance:read")
        assert not profile.has_permission("finance:write")


class TestProfileSelection:
    def test_all_profiles_include_unconfigured(self, iacs_md_env):
        profiles = {p.id: p for p in all_profiles(environ=iacs_md_env)}
        assert profiles["iacs-md"].is_configured
        assert not profiles["super-admin"].is_configured
        assert profiles["super-admin"].missing_fields() == ["email", "password", "totp_secret"]

    def test_requested_subset_in_given_order(self, iacs_md_env):
        profiles = profiles_to_authenticate("iacs-md, super-admin", environ=iacs_md_env)
        assert [p.id for p in profiles] == ["iacs-md", "super-admin"]

    def test_empty_request_means_all(self, iacs_md_env):
        assert [p.id for p in profiles_to_authenticate("", environ=iacs_md_env)] == all_profile_ids()

    def test_unknown_requested_profile(self):
        with pytest.raises(ProfileNotFoundError):
            profiles_to_authenticate("iacs-md,ghost", environ={})

    def test_by_tenant(self, iacs_md_env):
        assert [p.id for p in profiles_by_tenant("iacs", environ=iacs_md_env)] == ["iacs-md"]

    def test_summary_marks_missing_credentials(self, iacs_md_env):
        summary = profiles_summary(all_profiles(environ=iacs_md_env))
        lines = summary.splitlines()
        assert lines[0] == "Configured user profiles:"
        assert any("iacs-md" in line and "ready" in line for line in lines)
        assert any("super-admin" in line and "missing" in line for line in lines)


class TestTenantRoleUsers:
    ENV = {
        "TEST_IACS_FINANCE_MANAGER_EMAIL": "fm@iacs.example",
        "TEST_IACS_FINANCE_MANAGER_PASSWORD": "pw",
        "TEST_IACS_FINANCE_MANAGER_TOTP_SECRET": "JBSWY3DPEHPK3PXP",
    }

    def test_get_test_user(self):
        user = get_test_user("iacs", "finance-manager", environ=self.ENV)
        assert user.email == "fm@iacs.example"
        assert user.tenant == "IACS"

    def test_missing_test_user(self):
        with pytest.raises(ConfigurationIncomplete) as excinfo:
            get_test_user("demo", "admin", environ={})
        assert "TEST_DEMO_ADMIN_EMAIL" in excinfo.value.missing

    def test_legacy_role_fallback(self):
        env = {
            "TEST_USER_MANAGER_EMAIL": "manager@example.com",
            "TEST_USER_MANAGER_PASSWORD": "pw",
            "TEST_USER_MANAGER_TOTP_SECRET": "JBSWY3DPEHPK3PXP",
        }
        assert get_test_user_by_role("manager", environ=env).email == "manager@example.com"

    def test_validate_test_users(self):
        problems = validate_test_users(["IACS", "DEMO"], ["finance-manager"], environ=self.ENV)
        assert list(problems) == ["DEMO/finance-manager"]
