"""TOTP codes for the second login factor.

Must match the platform's authenticator setup exactly: 6 digits, 30 second
period, SHA-1, issuer ``DAEE`` and the user's email as label.
"""
from __future__ import annotations

import hashlib
import time
from datetime import datetime
from typing import Optional, Union

import pyotp

ISSUER = "DAEE"
DIGITS = 6
PERIOD = 30

ForTime = Union[int, float, datetime, None]


def normalize_secret(secret: str) -> str:
    return "".join(secret.split()).upper()


def create_totp(secret: str, email: Optional[str] = None) -> pyotp.TOTP:
    return pyotp.TOTP(
        normalize_secret(secret),
        digits=DIGITS,
        digest=hashlib.sha1,
        name=email,
        issuer=ISSUER,
        interval=PERIOD,
    )


def generate_totp_code(secret: str, for_time: ForTime = None, email: Optional[str] = None) -> str:
    """Code for ``for_time`` (a unix timestamp or datetime), or for now."""
    totp = create_totp(secret, email)
    if for_time is None:
        return totp.now()
    return totp.at(for_time)


def verify_totp_code(secret: str, code: str, for_time: ForTime = None, valid_window: int = 1) -> bool:
    return create_totp(secret).verify(code, for_time=for_time, valid_window=valid_window)


def provisioning_uri(secret: str, email: str) -> str:
    return create_totp(secret, email).provisioning_uri()


def seconds_remaining(for_time: Optional[float] = None) -> int:
    """Seconds until the current code rolls over."""
    now = time.time() if for_time is None else for_time
    return PERIOD - int(now) % PERIOD
