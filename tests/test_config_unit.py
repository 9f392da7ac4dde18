"""Unit tests for Settings loading."""

import pytest

from config import Settings, REQUIRED_VARIABLES
from services.errors import ConfigurationError


def full_env(**extra):
    env = {name: f"value-{name.lower()}" for name in REQUIRED_VARIABLES}
    env["DATABASE_URL"] = "sqlite:///:memory:"
    env.update(extra)
    return env


class TestFromEnv:

    def test_missing_required_values_are_all_reported(self):
        env = full_env()
        del env["DATABASE_URL"]
        env["ORACLE_REGION"] = ""

        with pytest.raises(ConfigurationError) as exc:
            Settings.from_env(env)

        assert "DATABASE_URL" in exc.value.message
        assert "ORACLE_REGION" in exc.value.message

    def test_defaults_apply(self):
        settings = Settings.from_env(full_env())

        assert settings.signed_url_ttl_seconds == 300
        assert settings.allow_multiple_accounts_per_provider is True
        assert settings.deduplicate_publishes is False
        assert settings.oauth_clients == {}

    def test_overrides_and_oauth_pairs(self):
        settings = Settings.from_env(full_env(
            DEDUPLICATE_PUBLISHES="true",
            SIGNED_URL_TTL_SECONDS="600",
            LOG_LEVEL="debug",
            TIKTOK_CLIENT_KEY="key",
            TIKTOK_CLIENT_SECRET="secret",
            GOOGLE_CLIENT_ID="only-half",
        ))

        assert settings.deduplicate_publishes is True
        assert settings.signed_url_ttl_seconds == 600
        assert settings.log_level == "DEBUG"
        assert settings.oauth_client("tiktok") == ("key", "secret")
        assert "google" not in settings.oauth_clients

    def test_non_integer_value_rejected(self):
        with pytest.raises(ConfigurationError):
            Settings.from_env(full_env(HTTP_TIMEOUT_SECONDS="soon"))


class TestOAuthClient:

    def test_unconfigured_provider(self, test_settings):
        with pytest.raises(ConfigurationError) as exc:
            test_settings.oauth_client("facebook")

        assert exc.value.status_code == 503

    def test_settings_are_frozen(self, test_settings):
        with pytest.raises(Exception):
            test_settings.deduplicate_publishes = True
