"""TOTP generation must agree with the platform's authenticator settings."""
from datetime import datetime, timezone
from urllib.parse import parse_qs, urlparse

import pyotp
import pytest

from daee_e2e.auth.totp import (
    PERIOD,
    create_totp,
    generate_totp_code,
    normalize_secret,
    provisioning_uri,
    seconds_remaining,
    verify_totp_code,
)

SECRET = "JBSWY3DPEHPK3PXP"
# Start of a 30 second window.
WINDOW_START = 1_700_000_010


class TestGenerateCode:
    def test_six_digits(self):
        code = generate_totp_code(SECRET, for_time=WINDOW_START)
        assert len(code) == 6 and code.isdigit()

    def test_stable_within_window(self):
        first = generate_totp_code(SECRET, for_time=WINDOW_START)
        last = generate_totp_code(SECRET, for_time=WINDOW_START + PERIOD - 1)
        assert first == last

    def test_adjacent_windows_differ(self):
        codes = {generate_totp_code(SECRET, for_time=WINDOW_START + n * PERIOD) for n in range(2)}
        assert len(codes) == 2

    def test_matches_reference_authenticator(self):
        """Same result as a stock pyotp TOTP (SHA-1, 6 digits, 30s)."""
        assert generate_totp_code(SECRET, for_time=WINDOW_START) == pyotp.TOTP(SECRET).at(WINDOW_START)

    def test_accepts_datetime(self):
        moment = datetime.fromtimestamp(WINDOW_START, tz=timezone.utc)
        assert generate_totp_code(SECRET, for_time=moment) == generate_totp_code(SECRET, for_time=WINDOW_START)

    def test_secret_is_normalized(self):
        spaced = "jbsw y3dp ehpk 3pxp"
        assert normalize_secret(spaced) == SECRET
        assert generate_totp_code(spaced, for_time=WINDOW_START) == generate_totp_code(SECRET, for_time=WINDOW_START)


class TestVerifyCode:
    def test_verifies_current_code(self):
        code = generate_totp_code(SECRET, for_time=WINDOW_START)
        assert verify_totp_code(SECRET, code, for_time=WINDOW_START)

    def test_accepts_previous_window_within_tolerance(self):
        code = generate_totp_code(SECRET, for_time=WINDOW_START)
        assert verify_totp_code(SECRET, code, for_time=WINDOW_START + PERIOD)

    def test_rejects_wrong_code(self):
        code = generate_totp_code(SECRET, for_time=WINDOW_START)
        wrong = "000000" if code != "000000" else "111111"
        assert not verify_totp_code(SECRET, wrong, for_time=WINDOW_START)


class TestProvisioning:
    def test_uri_carries_issuer_and_email(self):
        uri = provisioning_uri(SECRET, "md@iacs.example")
        parsed = urlparse(uri)
        params = parse_qs(parsed.query)
        assert parsed.scheme == "otpauth"
        assert parsed.netloc == "totp"
        assert params["issuer"] == ["DAEE"]
        assert params["secret"] == [SECRET]
        assert "md%40iacs.example" in parsed.path or "md@iacs.example" in parsed.path

    def test_totp_settings(self):
        totp = create_totp(SECRET, "md@iacs.example")
        assert totp.digits == 6
        assert totp.interval == 30
        assert totp.issuer == "DAEE"


@pytest.mark.parametrize("offset, expected", [(0, 30), (1, 29), (29, 1)])
def test_seconds_remaining(offset, expected):
    assert seconds_remaining(WINDOW_START + offset) == expected
