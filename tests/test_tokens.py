"""
tests/test_tokens.py -- Unit tests for auth/tokens.py.

Covers:
  - issue_token() format and parse_authorization() round trip
  - Every parse failure maps to its own message and code
  - Expiry boundary: 23h accepted, 25h rejected, exactly max age accepted
  - bcrypt hash/verify, including non-bcrypt stored values
  - authenticate_user(): unknown email and wrong password both yield None
"""

from __future__ import annotations

import pytest

from auth.store import UserStore
from auth.tokens import (
    authenticate_user,
    hash_password,
    issue_token,
    now_ms,
    parse_authorization,
    verify_password,
)
from core.errors import Unauthorized

HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS


class TestIssueToken:
    def test_format(self) -> None:
        assert issue_token(7, issued_at_ms=1700000000000) == "token_7_1700000000000"

    def test_defaults_to_current_time(self) -> None:
        before = now_ms()
        token = issue_token(3)
        after = now_ms()
        issued = int(token.split("_")[2])
        assert before <= issued <= after

    def test_round_trip(self) -> None:
        token = issue_token(42, issued_at_ms=1000)
        claims = parse_authorization(f"Bearer {token}", current_ms=2000, max_age_ms=DAY_MS)
        assert claims.subject_id == 42
        assert claims.issued_at_ms == 1000

    def test_largest_row_id_is_accepted(self) -> None:
        claims = parse_authorization(f"Bearer token_{2**63 - 1}_1000", current_ms=2000, max_age_ms=DAY_MS)
        assert claims.subject_id == 2**63 - 1


class TestParseAuthorizationFailures:
    @pytest.mark.parametrize(
        ("header", "code"),
        [
            (None, "missing_token"),
            ("", "missing_token"),
            ("token_1_1000", "invalid_token_format"),
            ("Bearer abc", "invalid_token_format"),
            ("Basic token_1_1000", "invalid_token_format"),
            ("Bearer token_1_1000_extra", "malformed_token"),
            ("Bearer token_1", "malformed_token"),
            ("Bearer token_abc_1000", "invalid_token"),
            ("Bearer token_1_soon", "invalid_token"),
            ("Bearer token__1000", "invalid_token"),
            (f"Bearer token_{2**63}_1000", "invalid_token"),
            (f"Bearer token_{'9' * 30}_1000", "invalid_token"),
        ],
    )
    def test_rejected(self, header, code) -> None:
        with pytest.raises(Unauthorized) as exc_info:
            parse_authorization(header, current_ms=2000, max_age_ms=DAY_MS)
        assert exc_info.value.code == code
        assert exc_info.value.status_code == 401

    def test_missing_header_message(self) -> None:
        with pytest.raises(Unauthorized) as exc_info:
            parse_authorization(None)
        assert exc_info.value.message.startswith("Token de autorización requerido")

    def test_bad_prefix_message(self) -> None:
        with pytest.raises(Unauthorized) as exc_info:
            parse_authorization("Bearer xyz")
        assert exc_info.value.message == "Formato de token inválido. Usa: Bearer token_usuario_timestamp"


class TestExpiry:
    def test_23_hours_old_is_valid(self) -> None:
        now = now_ms()
        claims = parse_authorization(f"Bearer {issue_token(1, now - 23 * HOUR_MS)}", current_ms=now, max_age_ms=DAY_MS)
        assert claims.subject_id == 1

    def test_25_hours_old_is_expired(self) -> None:
        now = now_ms()
        with pytest.raises(Unauthorized) as exc_info:
            parse_authorization(f"Bearer {issue_token(1, now - 25 * HOUR_MS)}", current_ms=now, max_age_ms=DAY_MS)
        assert exc_info.value.code == "token_expired"
        assert exc_info.value.message == "Token expirado. Por favor, inicia sesión nuevamente."

    def test_exactly_max_age_is_valid(self) -> None:
        claims = parse_authorization("Bearer token_1_0", current_ms=DAY_MS, max_age_ms=DAY_MS)
        assert claims.issued_at_ms == 0

    def test_one_ms_past_max_age_is_expired(self) -> None:
        with pytest.raises(Unauthorized):
            parse_authorization("Bearer token_1_0", current_ms=DAY_MS + 1, max_age_ms=DAY_MS)

    def test_future_timestamp_is_accepted(self) -> None:
        now = now_ms()
        claims = parse_authorization(f"Bearer {issue_token(1, now + HOUR_MS)}", current_ms=now, max_age_ms=DAY_MS)
        assert claims.issued_at_ms == now + HOUR_MS


class TestPasswords:
    def test_hash_verifies(self) -> None:
        hashed = hash_password("s3cret")
        assert hashed != "s3cret"
        assert verify_password("s3cret", hashed)
        assert not verify_password("wrong", hashed)

    def test_non_bcrypt_hash_is_rejected_not_raised(self) -> None:
        assert verify_password("s3cret", "plaintext-in-db") is False

    def test_long_non_ascii_password(self) -> None:
        password = "ñ" * 72  # 144 bytes in UTF-8
        assert verify_password(password, hash_password(password))


class TestAuthenticateUser:
    def test_valid_credentials_return_user_without_hash(self, engine) -> None:
        store = UserStore(engine)
        store.create_user("Ana", "ana@example.com", hash_password("pw1"))
        user = authenticate_user(store, "ana@example.com", "pw1")
        assert user is not None
        assert user.email == "ana@example.com"
        assert user.password_hash is None

    def test_wrong_password_and_unknown_email_both_none(self, engine) -> None:
        store = UserStore(engine)
        store.create_user("Ana", "ana@example.com", hash_password("pw1"))
        assert authenticate_user(store, "ana@example.com", "nope") is None
        assert authenticate_user(store, "nobody@example.com", "pw1") is None
