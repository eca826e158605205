"""Test identities for the multi-tenant platform.

Each profile is one tenant/role combination with its own credentials and
its own session artifact. The registry is declared statically; credentials
are read from ``<PREFIX>_EMAIL``, ``<PREFIX>_PASSWORD`` and
``<PREFIX>_TOTP_SECRET`` only when a profile is requested, so a missing
variable only breaks the tests that need that identity.

Usage:
    profile = get_user_profile("iacs-md")
    await page.fill("input#email", profile.email)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from daee_e2e.config import settings
from daee_e2e.env_defaults import getenv
from daee_e2e.errors import ConfigurationIncomplete, ProfileNotFoundError

logger = logging.getLogger(__name__)

CREDENTIAL_FIELDS = ("EMAIL", "PASSWORD", "TOTP_SECRET")


@dataclass(frozen=True)
class ProfileDefinition:
    """Static registry entry; credentials are resolved later from the environment."""

    id: str
    env_prefix: str
    tenant: str
    role: str
    display_name: str
    storage_state_file: str
    permissions: Tuple[str, ...] = ()
    test_data_scope: str = ""
    description: str = ""
    enabled: bool = True
    legacy_env_prefix: Optional[str] = None

    def env_names(self) -> Dict[str, str]:
        return {name.lower(): f"{self.env_prefix}_{name}" for name in CREDENTIAL_FIELDS}


@dataclass(frozen=True)
class UserProfile:
    id: str
    email: str
    password: str
    totp_secret: str
    tenant: str
    role: str
    display_name: str
    storage_state_path: Path
    permissions: Tuple[str, ...] = ()
    test_data_scope: str = ""
    description: str = ""

    @property
    def is_configured(self) -> bool:
        return bool(self.email and self.password and self.totp_secret)

    def missing_fields(self) -> List[str]:
        return [name for name in ("email", "password", "totp_secret") if not getattr(self, name)]

    def has_permission(self, permission: str) -> bool:
        module, _, action = permission.partition(":")
        for granted in self.permissions:
            g_module, _, g_action = granted.partition(":")
            if g_module in ("*", module) and g_action in ("*", action):
                return True
        return False


@dataclass(frozen=True)
class TestUser:
    __test__ = False

    email: str
    password: str
    totp_secret: str
    tenant: str
    role: str


PROFILE_REGISTRY: Tuple[ProfileDefinition, ...] = (
    ProfileDefinition(
        id="super-admin",
        env_prefix="TEST_PRIMARY_ADMIN",
        legacy_env_prefix="TEST_USER_ADMIN",
        tenant="DAEE",
        role="Super Admin",
        display_name="Super Admin",
        storage_state_file="admin.json",
        permissions=("*:*",),
        test_data_scope="global",
        description="Platform administrator with access to every tenant",
    ),
    ProfileDefinition(
        id="iacs-md",
        env_prefix="IACS_MD_USER",
        tenant="IACS",
        role="Managing Director",
        display_name="IACS MD User",
        storage_state_file="iacs-md.json",
        permissions=("o2c:*", "finance:read", "warehouse:read"),
        test_data_scope="iacs",
        description="IACS Managing Director - full O2C access, read-only finance and warehouse",
    ),
    ProfileDefinition(
        id="iacs-finance-admin",
        env_prefix="IACS_FINANCE_ADMIN",
        tenant="IACS",
        role="Finance Admin",
        display_name="IACS Finance Admin",
        storage_state_file="iacs-finance-admin.json",
        permissions=("finance:*", "o2c:read"),
        test_data_scope="iacs",
        description="IACS finance administrator",
        enabled=False,
    ),
    ProfileDefinition(
        id="iacs-warehouse-manager",
        env_prefix="IACS_WAREHOUSE_MANAGER",
        tenant="IACS",
        role="Warehouse Manager",
        display_name="IACS Warehouse Manager",
        storage_state_file="iacs-warehouse-manager.json",
        permissions=("warehouse:*", "o2c:read"),
        test_data_scope="iacs",
        description="IACS warehouse manager",
        enabled=False,
    ),
    ProfileDefinition(
        id="demo-admin",
        env_prefix="DEMO_ADMIN",
        tenant="DEMO",
        role="Admin",
        display_name="Demo Admin",
        storage_state_file="demo-admin.json",
        permissions=("*:*",),
        test_data_scope="demo",
        description="Administrator of the demo tenant",
        enabled=False,
    ),
    ProfileDefinition(
        id="demo-finance-manager",
        env_prefix="DEMO_FINANCE_MANAGER",
        tenant="DEMO",
        role="Finance Manager",
        display_name="Demo Finance Manager",
        storage_state_file="demo-finance-manager.json",
        permissions=("finance:*",),
        test_data_scope="demo",
        description="Finance manager of the demo tenant",
        enabled=False,
    ),
)

# Role names as written in the feature files.
ROLE_PROFILE_IDS: Dict[str, str] = {
    "IACS MD User": "iacs-md",
    "Super Admin": "super-admin",
    "Finance Manager": "iacs-finance-admin",
    "Warehouse Manager": "iacs-warehouse-manager",
}


def _definitions(include_disabled: bool = False) -> List[ProfileDefinition]:
    return [d for d in PROFILE_REGISTRY if d.enabled or include_disabled]


def _definition(profile_id: str) -> ProfileDefinition:
    for definition in _definitions():
        if definition.id == profile_id:
            return definition
    disabled = any(d.id == profile_id for d in _definitions(include_disabled=True))
    raise ProfileNotFoundError(profile_id, all_profile_ids(), disabled=disabled)


def _read_credentials(
    definition: ProfileDefinition, environ: Optional[Mapping[str, str]]
) -> Dict[str, str]:
    values = {key: getenv(name, "", environ=environ) for key, name in definition.env_names().items()}
    if definition.legacy_env_prefix and not all(values.values()):
        for key in values:
            if not values[key]:
                legacy = getenv(f"{definition.legacy_env_prefix}_{key.upper()}", "", environ=environ)
                if legacy:
                    logger.warning(
                        "Using legacy %s_%s for profile %s; rename it to %s_%s",
                        definition.legacy_env_prefix, key.upper(), definition.id,
                        definition.env_prefix, key.upper(),
                    )
                    values[key] = legacy
    return values


def build_profile(
    definition: ProfileDefinition, environ: Optional[Mapping[str, str]] = None
) -> UserProfile:
    """Resolve a registry entry into a profile without validating credentials."""
    creds = _read_credentials(definition, environ)
    return UserProfile(
        id=definition.id,
        email=creds["email"],
        password=creds["password"],
        totp_secret=creds["totp_secret"],
        tenant=definition.tenant,
        role=definition.role,
        display_name=definition.display_name,
        storage_state_path=settings.auth_state_path(definition.storage_state_file),
        permissions=definition.permissions,
        test_data_scope=definition.test_data_scope,
        description=definition.description,
    )


def get_user_profile(profile_id: str, environ: Optional[Mapping[str, str]] = None) -> UserProfile:
    """Return a fully configured profile.

    Raises ProfileNotFoundError for unknown or disabled ids and
    ConfigurationIncomplete when any credential variable is unset.
    """
    definition = _definition(profile_id)
    profile = build_profile(definition, environ)
    if not profile.is_configured:
        names = definition.env_names()
        raise ConfigurationIncomplete(
            subject=f"profile '{profile_id}'",
            missing=[names[name] for name in profile.missing_fields()],
        )
    return profile


def all_profile_ids() -> List[str]:
    return [d.id for d in _definitions()]


def has_profile(profile_id: str) -> bool:
    return profile_id in all_profile_ids()


def all_profiles(environ: Optional[Mapping[str, str]] = None) -> List[UserProfile]:
    """Every enabled profile, configured or not, in registry order."""
    return [build_profile(d, environ) for d in _definitions()]


def profiles_by_tenant(tenant: str, environ: Optional[Mapping[str, str]] = None) -> List[UserProfile]:
    return [p for p in all_profiles(environ) if p.tenant.lower() == tenant.lower()]


def profiles_by_role(role: str, environ: Optional[Mapping[str, str]] = None) -> List[UserProfile]:
    return [p for p in all_profiles(environ) if p.role.lower() == role.lower()]


def role_profile_id(role: str) -> str:
    """Profile id for a role name used in the feature files; it must be enabled."""
    try:
        profile_id = ROLE_PROFILE_IDS[role]
    except KeyError:
        raise ProfileNotFoundError(role, sorted(ROLE_PROFILE_IDS)) from None
    if not has_profile(profile_id):
        raise ProfileNotFoundError(profile_id, all_profile_ids(), disabled=True)
    return profile_id


def profiles_to_authenticate(
    requested: Optional[str] = None, environ: Optional[Mapping[str, str]] = None
) -> List[UserProfile]:
    """Profiles the auth bootstrap should log in.

    ``requested`` is a comma-separated id list (``TEST_AUTH_PROFILES``);
    without it every enabled profile is returned.
    """
    if requested is None:
        requested = settings.auth_profiles
    if not requested:
        return all_profiles(environ)

    ids = [item.strip() for item in requested.split(",") if item.strip()]
    unknown = [profile_id for profile_id in ids if not has_profile(profile_id)]
    if unknown:
        raise ProfileNotFoundError(", ".join(unknown), all_profile_ids())
    return [build_profile(_definition(profile_id), environ) for profile_id in ids]


def profiles_summary(profiles: Optional[Iterable[UserProfile]] = None) -> str:
    lines = ["Configured user profiles:"]
    for profile in profiles if profiles is not None else all_profiles():
        status = "ready" if profile.is_configured else f"missing {', '.join(profile.missing_fields())}"
        lines.append(
            f"  {profile.id:<24} {profile.tenant:<6} {profile.role:<20} "
            f"{profile.storage_state_path.name:<28} {status}"
        )
    return "\n".join(lines)


# ---- tenant/role convention: TEST_<TENANT>_<ROLE>_<FIELD> ------------------------

def _env_key(*parts: str) -> str:
    return "_".join(part.strip().upper().replace("-", "_").replace(" ", "_") for part in parts)


def get_test_user(tenant: str, role: str, environ: Optional[Mapping[str, str]] = None) -> TestUser:
    prefix = _env_key("TEST", tenant, role)
    values = {field: getenv(f"{prefix}_{field}", "", environ=environ) for field in CREDENTIAL_FIELDS}
    missing = [f"{prefix}_{field}" for field, value in values.items() if not value]
    if missing:
        raise ConfigurationIncomplete(subject=f"test user {tenant}/{role}", missing=missing)
    return TestUser(
        email=values["EMAIL"],
        password=values["PASSWORD"],
        totp_secret=values["TOTP_SECRET"],
        tenant=tenant.upper(),
        role=role,
    )


def get_test_user_by_role(
    role: str, tenant: str = "IACS", environ: Optional[Mapping[str, str]] = None
) -> TestUser:
    """Tenant-scoped lookup with a fallback to the older ``TEST_USER_<ROLE>_*`` names."""
    try:
        return get_test_user(tenant, role, environ)
    except ConfigurationIncomplete:
        prefix = _env_key("TEST_USER", role)
        values = {field: getenv(f"{prefix}_{field}", "", environ=environ) for field in CREDENTIAL_FIELDS}
        if not all(values.values()):
            raise
        logger.warning("Using legacy %s_* credentials; migrate to %s_*", prefix, _env_key("TEST", tenant, role))
        return TestUser(
            email=values["EMAIL"],
            password=values["PASSWORD"],
            totp_secret=values["TOTP_SECRET"],
            tenant=tenant.upper(),
            role=role,
        )


def available_tenants() -> List[str]:
    return sorted({d.tenant for d in _definitions()})


def validate_test_users(
    tenants: Iterable[str], roles: Iterable[str], environ: Optional[Mapping[str, str]] = None
) -> Dict[str, List[str]]:
    """Return the missing variables per ``TENANT/role``; empty when all are set."""
    roles = list(roles)
    problems: Dict[str, List[str]] = {}
    for tenant in tenants:
        for role in roles:
            try:
                get_test_user(tenant, role, environ)
            except ConfigurationIncomplete as exc:
                problems[f"{tenant.upper()}/{role}"] = list(exc.missing)
    return problems
