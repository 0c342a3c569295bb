"""Tests for app.core.config.Settings validation and derived properties."""

import unittest

from pydantic import SecretStr, ValidationError

from app.core.config import Settings


def _settings(**kwargs: object) -> Settings:
    return Settings(_env_file=None, **kwargs)


class TestSettingsDefaults(unittest.TestCase):
    def test_auth_defaults(self) -> None:
        s = Settings.model_construct()
        self.assertEqual(s.JWT_ALGORITHM, "HS256")
        self.assertEqual(s.JWT_EXPIRE_MINUTES, 15)
        self.assertEqual(s.REFRESH_TOKEN_EXPIRE_DAYS, 7)
        self.assertEqual(s.REFRESH_COOKIE_NAME, "refreshToken")
        self.assertEqual(s.API_PREFIX, "/api")
        self.assertTrue(s.DATABASE_URL.startswith("sqlite"))

    def test_refresh_cookie_path_follows_prefix(self) -> None:
        self.assertEqual(_settings(API_PREFIX="/api").refresh_cookie_path, "/api/auth")
        self.assertEqual(_settings(API_PREFIX="/v2/").refresh_cookie_path, "/v2/auth")


class TestSettingsValidation(unittest.TestCase):
    def test_database_url_scheme(self) -> None:
        self.assertEqual(_settings(DATABASE_URL=" postgresql://u:p@db/app ").DATABASE_URL, "postgresql://u:p@db/app")
        with self.assertRaises(ValidationError):
            _settings(DATABASE_URL="mysql://u:p@db/app")
        with self.assertRaises(ValidationError):
            _settings(DATABASE_URL="")

    def test_api_prefix_must_be_absolute(self) -> None:
        with self.assertRaises(ValidationError):
            _settings(API_PREFIX="api")

    def test_jwt_secret_non_empty(self) -> None:
        with self.assertRaises(ValidationError):
            _settings(JWT_SECRET=SecretStr("   "))

    def test_lifetimes_are_bounded(self) -> None:
        for field, value in (
            ("JWT_EXPIRE_MINUTES", 0),
            ("JWT_EXPIRE_MINUTES", 1441),
            ("REFRESH_TOKEN_EXPIRE_DAYS", 0),
            ("REFRESH_TOKEN_EXPIRE_DAYS", 366),
            ("SMTP_PORT", 0),
            ("SMTP_TIMEOUT_SEC", 0),
        ):
            with self.assertRaises(ValidationError, msg=field):
                _settings(**{field: value})

    def test_frontend_url(self) -> None:
        self.assertEqual(_settings(FRONTEND_URL="https://app.x.test/").FRONTEND_URL, "https://app.x.test")
        with self.assertRaises(ValidationError):
            _settings(FRONTEND_URL="ftp://app.x.test")

    def test_blank_optional_strings_become_none(self) -> None:
        s = _settings(ADMIN_EMAIL="  ", SMTP_HOST="")
        self.assertIsNone(s.ADMIN_EMAIL)
        self.assertIsNone(s.SMTP_HOST)


class TestAdminBootstrapConfigured(unittest.TestCase):
    def test_requires_email_and_password(self) -> None:
        self.assertTrue(
            _settings(ADMIN_EMAIL="admin@x.test", ADMIN_PASSWORD=SecretStr("Secret123")).admin_bootstrap_configured
        )
        self.assertFalse(_settings(ADMIN_EMAIL="admin@x.test", ADMIN_PASSWORD=None).admin_bootstrap_configured)
        self.assertFalse(_settings(ADMIN_EMAIL=None, ADMIN_PASSWORD=SecretStr("x")).admin_bootstrap_configured)
        self.assertFalse(
            _settings(ADMIN_EMAIL="admin@x.test", ADMIN_PASSWORD=SecretStr("")).admin_bootstrap_configured
        )


if __name__ == "__main__":
    unittest.main()
