"""Unit tests for app.core.security: bcrypt hashing, JWT access tokens, opaque tokens."""

import base64
import json
import unittest
from datetime import datetime, timedelta

import jwt

from app.core.errors import HashingError, TokenExpiredError, TokenInvalidError
from app.core.security import (
    PasswordHasher,
    TokenIssuer,
    as_utc,
    is_valid_email,
    password_problem,
)
from app.schemas.auth import TokenPayload

from clock_helpers import T0, MutableClock

SECRET = "test-secret"


def _payload(**kwargs: object) -> TokenPayload:
    defaults = {"user_id": 7, "email": "ada@x.test", "role": "manager"}
    defaults.update(kwargs)
    return TokenPayload(**defaults)


def _b64url(data: dict) -> str:
    raw = json.dumps(data, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


class TestPasswordHasher(unittest.TestCase):
    """hash/verify round trip with a low work factor for speed."""

    def setUp(self) -> None:
        self.hasher = PasswordHasher(rounds=4)

    def test_round_trip(self) -> None:
        for password in ("Secret123", "longenough1", "ünïcødé-pässwörd", " spaces inside "):
            hashed = self.hasher.hash(password)
            self.assertNotEqual(hashed, password)
            self.assertTrue(self.hasher.verify(password, hashed))

    def test_wrong_password_fails(self) -> None:
        hashed = self.hasher.hash("Secret123")
        self.assertFalse(self.hasher.verify("Secret124", hashed))
        self.assertFalse(self.hasher.verify("", hashed))

    def test_hash_is_salted(self) -> None:
        self.assertNotEqual(self.hasher.hash("Secret123"), self.hasher.hash("Secret123"))

    def test_default_work_factor_is_12(self) -> None:
        self.assertEqual(PasswordHasher().rounds, 12)

    def test_malformed_stored_hash_returns_false(self) -> None:
        self.assertFalse(self.hasher.verify("Secret123", "not-a-bcrypt-hash"))

    def test_bad_work_factor_raises_hashing_error(self) -> None:
        with self.assertRaises(HashingError):
            PasswordHasher(rounds=99).hash("Secret123")


class TestAccessTokens(unittest.TestCase):
    """issue_access_token / verify_access_token with a controlled clock."""

    def setUp(self) -> None:
        self.clock = MutableClock()
        self.issuer = TokenIssuer(SECRET, access_token_minutes=15, clock=self.clock)

    def test_round_trip_returns_payload(self) -> None:
        token = self.issuer.issue_access_token(_payload())
        payload = self.issuer.verify_access_token(token)
        self.assertEqual(payload, _payload())

    def test_valid_just_before_expiry(self) -> None:
        token = self.issuer.issue_access_token(_payload())
        self.clock.advance(timedelta(minutes=14, seconds=59))
        self.assertEqual(self.issuer.verify_access_token(token).user_id, 7)

    def test_expired_just_after_expiry(self) -> None:
        token = self.issuer.issue_access_token(_payload())
        self.clock.advance(timedelta(minutes=15, seconds=1))
        with self.assertRaises(TokenExpiredError) as ctx:
            self.issuer.verify_access_token(token)
        self.assertEqual(ctx.exception.code, "TOKEN_EXPIRED")

    def test_wrong_secret_is_invalid(self) -> None:
        token = TokenIssuer("other-secret", clock=self.clock).issue_access_token(_payload())
        with self.assertRaises(TokenInvalidError):
            self.issuer.verify_access_token(token)

    def test_tampered_claims_are_invalid(self) -> None:
        token = self.issuer.issue_access_token(_payload(role="viewer"))
        header, _claims, signature = token.split(".")
        forged_claims = _b64url(
            {
                "sub": "7",
                "email": "ada@x.test",
                "role": "admin",
                "iat": int(T0.timestamp()),
                "exp": int((T0 + timedelta(minutes=15)).timestamp()),
            }
        )
        with self.assertRaises(TokenInvalidError):
            self.issuer.verify_access_token(f"{header}.{forged_claims}.{signature}")

    def test_any_mutated_character_never_yields_altered_claims(self) -> None:
        token = self.issuer.issue_access_token(_payload())
        alphabet = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"
        # Skip the final signature character: its low bits are base64 padding.
        for i in range(0, len(token) - 1, 3):
            if token[i] == ".":
                continue
            replacement = alphabet[(alphabet.index(token[i]) + 17) % len(alphabet)]
            mutated = token[:i] + replacement + token[i + 1 :]
            try:
                payload = self.issuer.verify_access_token(mutated)
            except TokenInvalidError:
                continue
            self.assertEqual(payload, _payload(), f"mutation at {i} changed the claims")

    def test_signature_mutation_is_invalid(self) -> None:
        token = self.issuer.issue_access_token(_payload())
        header, claims, signature = token.split(".")
        middle = len(signature) // 2
        flipped = "A" if signature[middle] != "A" else "B"
        mutated_sig = signature[:middle] + flipped + signature[middle + 1 :]
        with self.assertRaises(TokenInvalidError):
            self.issuer.verify_access_token(f"{header}.{claims}.{mutated_sig}")

    def test_garbage_is_invalid(self) -> None:
        for garbage in ("", "abc", "a.b.c", "Bearer x"):
            with self.assertRaises(TokenInvalidError):
                self.issuer.verify_access_token(garbage)

    def test_unknown_role_claim_is_invalid(self) -> None:
        token = self.issuer.issue_access_token(_payload())
        forged = jwt.encode(
            {
                "sub": "7",
                "email": "ada@x.test",
                "role": "superuser",
                "iat": T0,
                "exp": T0 + timedelta(minutes=15),
            },
            SECRET,
            algorithm="HS256",
        )
        self.assertNotEqual(token, forged)
        with self.assertRaises(TokenInvalidError):
            self.issuer.verify_access_token(forged)

    def test_empty_secret_rejected(self) -> None:
        with self.assertRaises(ValueError):
            TokenIssuer("")


class TestOpaqueTokens(unittest.TestCase):
    """Refresh and verification tokens: random hex strings with fixed lifetimes."""

    def setUp(self) -> None:
        self.issuer = TokenIssuer(SECRET, refresh_token_days=7, clock=MutableClock())

    def test_refresh_token_is_128_hex_chars(self) -> None:
        token = self.issuer.issue_refresh_token()
        self.assertEqual(len(token), 128)
        int(token, 16)
        self.assertNotEqual(token, self.issuer.issue_refresh_token())

    def test_verification_token_is_64_hex_chars(self) -> None:
        token = self.issuer.issue_verification_token()
        self.assertEqual(len(token), 64)
        int(token, 16)

    def test_refresh_expiry_is_configurable_days(self) -> None:
        self.assertEqual(self.issuer.refresh_token_expiry(), T0 + timedelta(days=7))
        other = TokenIssuer(SECRET, refresh_token_days=30)
        self.assertEqual(other.refresh_token_expiry(T0), T0 + timedelta(days=30))

    def test_verification_expiry_is_24_hours(self) -> None:
        self.assertEqual(self.issuer.verification_token_expiry(), T0 + timedelta(hours=24))


class TestHelpers(unittest.TestCase):
    def test_email_shape(self) -> None:
        self.assertTrue(is_valid_email("u@x.test"))
        self.assertTrue(is_valid_email("first.last+tag@mail.example.org"))
        for bad in ("", "u", "u@x", "@x.test", "u@@x.test", "u @x.test", "u@x .test"):
            self.assertFalse(is_valid_email(bad), bad)

    def test_as_utc_treats_naive_as_utc(self) -> None:
        naive = datetime(2025, 1, 1, 12, 0, 0)
        self.assertEqual(as_utc(naive), T0)
        self.assertEqual(as_utc(T0), T0)

    def test_password_length_limits(self) -> None:
        self.assertIsNone(password_problem("Password1"))
        self.assertIsNone(password_problem("a" * 72))
        self.assertIn("at least 8", password_problem("short"))
        self.assertIn("72 bytes", password_problem("a" * 73))

    def test_password_limit_counts_utf8_bytes(self) -> None:
        self.assertIsNone(password_problem("\u00fc" * 36))
        self.assertIn("72 bytes", password_problem("\u00fc" * 37))


if __name__ == "__main__":
    unittest.main()
