"""
Read-only access to the platform's PostgreSQL database.

Used for "sandwich" checks around UI actions, e.g. asserting that a TOTP
login produced an aal2 session. Only SELECT (and WITH ... SELECT)
statements are accepted; anything else raises ReadOnlyViolation before it
reaches the server, and every connection is opened in a read-only
transaction as well.

Connection settings: SUPABASE_DB_HOST, SUPABASE_DB_PORT (5432),
SUPABASE_DB_NAME (postgres), SUPABASE_DB_USER (postgres),
SUPABASE_DB_PASSWORD.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import URL, Engine

from daee_e2e.env_defaults import getenv
from daee_e2e.errors import ConfigurationIncomplete, ReadOnlyViolation

logger = logging.getLogger(__name__)

READ_ONLY_STATEMENT = re.compile(r"^\s*(SELECT|WITH)\b", re.IGNORECASE)
WRITE_KEYWORDS = re.compile(r"\b(INSERT|UPDATE|DELETE|MERGE|DROP|ALTER|TRUNCATE|CREATE|GRANT)\b", re.IGNORECASE)

Row = Dict[str, Any]


@dataclass(frozen=True)
class DatabaseSettings:
    host: str
    password: str
    port: int = 5432
    database: str = "postgres"
    user: str = "postgres"
    sslmode: str = "require"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "DatabaseSettings":
        host = getenv("SUPABASE_DB_HOST", environ=environ)
        password = getenv("SUPABASE_DB_PASSWORD", environ=environ)
        missing = [name for name, value in (("SUPABASE_DB_HOST", host), ("SUPABASE_DB_PASSWORD", password)) if not value]
        if missing:
            raise ConfigurationIncomplete(subject="database connection", missing=missing)
        return cls(
            host=host,
            password=password,
            port=int(getenv("SUPABASE_DB_PORT", "5432", environ=environ)),
            database=getenv("SUPABASE_DB_NAME", "postgres", environ=environ),
            user=getenv("SUPABASE_DB_USER", "postgres", environ=environ),
        )

    def url(self) -> URL:
        return URL.create(
            "postgresql+psycopg2",
            username=self.user,
            password=self.password,
            host=self.host,
            port=self.port,
            database=self.database,
            query={"sslmode": self.sslmode},
        )


def ensure_read_only(statement: str) -> None:
    if not READ_ONLY_STATEMENT.match(statement):
        raise ReadOnlyViolation(statement.strip())
    # A CTE may still wrap a data-modifying statement.
    if statement.lstrip().upper().startswith("WITH") and WRITE_KEYWORDS.search(statement):
        raise ReadOnlyViolation(statement.strip())


class ReadOnlyDatabase:
    """SELECT-only query helper over a small SQLAlchemy connection pool."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @classmethod
    def from_settings(cls, settings: Optional[DatabaseSettings] = None) -> "ReadOnlyDatabase":
        settings = settings or DatabaseSettings.from_env()
        engine = create_engine(settings.url(), pool_size=5, max_overflow=0, pool_pre_ping=True)

        @event.listens_for(engine, "begin")
        def _read_only_transaction(conn):
            conn.exec_driver_sql("SET TRANSACTION READ ONLY")

        logger.info("Read-only database connection to %s:%s/%s", settings.host, settings.port, settings.database)
        return cls(engine)

    def execute_query(self, statement: str, params: Optional[Mapping[str, Any]] = None) -> List[Row]:
        ensure_read_only(statement)
        with self.engine.connect() as conn:
            result = conn.execute(text(statement), dict(params or {}))
            rows = [dict(row) for row in result.mappings()]
        logger.debug("%d rows from %s", len(rows), " ".join(statement.split())[:80])
        return rows

    def close(self) -> None:
        self.engine.dispose()

    # ---- auth schema ------------------------------------------------------------
    def get_user_by_email(self, email: str) -> Optional[Row]:
        rows = self.execute_query(
            """
            SELECT id, email, created_at, last_sign_in_at, app_metadata, user_metadata
            FROM auth.users
            WHERE email = :email
            """,
            {"email": email},
        )
        return rows[0] if rows else None

    def get_totp_factor_for_user(self, user_id: str) -> List[Row]:
        return self.execute_query(
            """
            SELECT id, user_id, factor_type, status, created_at, updated_at
            FROM auth.mfa_factors
            WHERE user_id = :user_id AND factor_type = 'totp'
            """,
            {"user_id": user_id},
        )

    def get_user_sessions(self, user_id: str) -> List[Row]:
        """Sessions of a user, newest first."""
        return self.execute_query(
            """
            SELECT id, user_id, aal, created_at, updated_at, factor_id
            FROM auth.sessions
            WHERE user_id = :user_id
            ORDER BY created_at DESC
            """,
            {"user_id": user_id},
        )

    def get_latest_session(self, user_id: str) -> Optional[Row]:
        sessions = self.get_user_sessions(user_id)
        return sessions[0] if sessions else None

    def has_user_completed_mfa(self, user_id: str) -> bool:
        latest = self.get_latest_session(user_id)
        return latest is not None and latest["aal"] == "aal2"

    def get_authentication_log(self, user_id: str, action: Optional[str] = None, limit: int = 10) -> List[Row]:
        statement = """
            SELECT id, instance_id, ip_address, created_at, payload
            FROM auth.audit_log_entries
            WHERE (payload->>'user_id')::uuid = CAST(:user_id AS uuid)
        """
        params: Dict[str, Any] = {"user_id": user_id, "limit": limit}
        if action:
            statement += " AND payload->>'action' = :action"
            params["action"] = action
        statement += " ORDER BY created_at DESC LIMIT :limit"
        return self.execute_query(statement, params)
