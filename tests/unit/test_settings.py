"""
Unit tests for the configuration settings module.

Tests cover:
- Default values
- Field format validation
- Environment-specific validation
- Settings caching and conversion to store options
"""

import os
import pytest
from unittest.mock import patch

from config.settings import (
    Settings,
    Environment,
    ConfigurationError,
    create_settings_for_environment,
    get_settings,
    clear_settings_cache,
)
from session.options import SessionStoreConfig


class TestSettings:
    """Tests for the Settings class."""

    @pytest.fixture
    def valid_env_vars(self):
        """Provide valid environment variables for testing."""
        return {
            "ELASTIC_ENDPOINT": "https://elasticsearch.example.com:9200",
            "ELASTIC_API_KEY": "test-api-key-12345",
            "ENVIRONMENT": "development",
        }

    def test_valid_configuration_loads_successfully(self, valid_env_vars):
        """Test that valid configuration loads without errors."""
        with patch.dict(os.environ, valid_env_vars, clear=True):
            settings = Settings(_env_file=None)

            assert settings.elastic_endpoint == "https://elasticsearch.example.com:9200"
            assert settings.elastic_api_key == "test-api-key-12345"
            assert settings.environment == Environment.DEVELOPMENT

    def test_default_values_are_applied(self, valid_env_vars):
        """Test that default values are correctly applied."""
        with patch.dict(os.environ, valid_env_vars, clear=True):
            settings = Settings(_env_file=None)

            assert settings.document_store_type == "elasticsearch"
            assert settings.session_index == "sessions"
            assert settings.session_ttl_override is None
            assert settings.session_key_prefix == "sess:"
            assert settings.session_disable_ttl_refresh is False
            assert settings.expiry_index_name == "express_expired_sessions"
            assert settings.expiry_index_design_name == "expired_sessions"
            assert settings.max_expired_per_cleanup == 100
            assert settings.log_level == "INFO"

    def test_session_options_from_environment(self, valid_env_vars):
        """Test that session options are read from environment variables."""
        env_vars = {
            **valid_env_vars,
            "SESSION_TTL_OVERRIDE": "3600",
            "SESSION_KEY_PREFIX": "app:",
            "SESSION_DISABLE_TTL_REFRESH": "true",
            "MAX_EXPIRED_PER_CLEANUP": "25",
        }
        with patch.dict(os.environ, env_vars, clear=True):
            settings = Settings(_env_file=None)

            config = SessionStoreConfig.from_settings(settings)

            assert config.ttl_override == 3600
            assert config.key_prefix == "app:"
            assert config.disable_ttl_refresh is True
            assert config.max_expired_per_cleanup == 25

    def test_missing_endpoint_allowed_in_development(self):
        """Development falls back to the in-memory store without an endpoint."""
        with patch.dict(os.environ, {"ENVIRONMENT": "development"}, clear=True):
            settings = Settings(_env_file=None)

            assert settings.elastic_endpoint is None

    def test_missing_endpoint_rejected_in_production(self):
        """Test that production requires an Elasticsearch endpoint."""
        with patch.dict(os.environ, {"ENVIRONMENT": "production"}, clear=True):
            with pytest.raises(Exception) as exc_info:
                Settings(_env_file=None)

            assert "elastic_endpoint" in str(exc_info.value).lower()

    def test_memory_store_rejected_in_production(self, valid_env_vars):
        env_vars = {**valid_env_vars, "ENVIRONMENT": "production", "DOCUMENT_STORE_TYPE": "memory"}
        with patch.dict(os.environ, env_vars, clear=True):
            with pytest.raises(Exception) as exc_info:
                Settings(_env_file=None)

            assert "memory" in str(exc_info.value).lower()

    def test_invalid_elastic_endpoint_format(self, valid_env_vars):
        """Test that invalid elastic_endpoint URL format raises error."""
        env_vars = {**valid_env_vars, "ELASTIC_ENDPOINT": "not-a-valid-url"}

        with patch.dict(os.environ, env_vars, clear=True):
            with pytest.raises(Exception) as exc_info:
                Settings(_env_file=None)

            assert "elastic_endpoint" in str(exc_info.value).lower()

    def test_uppercase_index_name_rejected(self, valid_env_vars):
        env_vars = {**valid_env_vars, "SESSION_INDEX": "Sessions"}

        with patch.dict(os.environ, env_vars, clear=True):
            with pytest.raises(Exception) as exc_info:
                Settings(_env_file=None)

            assert "session_index" in str(exc_info.value).lower()

    def test_negative_ttl_override_rejected(self, valid_env_vars):
        env_vars = {**valid_env_vars, "SESSION_TTL_OVERRIDE": "-1"}

        with patch.dict(os.environ, env_vars, clear=True):
            with pytest.raises(Exception):
                Settings(_env_file=None)

    def test_invalid_document_store_type(self, valid_env_vars):
        env_vars = {**valid_env_vars, "DOCUMENT_STORE_TYPE": "couchdb"}

        with patch.dict(os.environ, env_vars, clear=True):
            with pytest.raises(Exception) as exc_info:
                Settings(_env_file=None)

            assert "document_store_type" in str(exc_info.value).lower()

    def test_log_level_case_insensitive(self, valid_env_vars):
        """Test that log_level validation is case-insensitive."""
        env_vars = {**valid_env_vars, "LOG_LEVEL": "debug"}

        with patch.dict(os.environ, env_vars, clear=True):
            settings = Settings(_env_file=None)

            assert settings.log_level == "DEBUG"

    def test_invalid_log_level(self, valid_env_vars):
        env_vars = {**valid_env_vars, "LOG_LEVEL": "VERBOSE"}

        with patch.dict(os.environ, env_vars, clear=True):
            with pytest.raises(Exception) as exc_info:
                Settings(_env_file=None)

            assert "log_level" in str(exc_info.value).lower()


class TestConfigurationError:
    """Tests for the ConfigurationError exception."""

    def test_configuration_error_with_missing_fields(self):
        error = ConfigurationError(
            "Configuration failed",
            missing_fields=["elastic_endpoint"]
        )

        assert "Configuration failed" in str(error)
        assert "elastic_endpoint" in str(error)
        assert error.missing_fields == ["elastic_endpoint"]

    def test_configuration_error_with_invalid_fields(self):
        error = ConfigurationError(
            "Configuration failed",
            invalid_fields={"log_level": "must be one of: DEBUG, INFO"}
        )

        assert "log_level" in str(error)
        assert error.invalid_fields == {"log_level": "must be one of: DEBUG, INFO"}

    def test_create_settings_wraps_validation_errors(self):
        with patch.dict(os.environ, {"SESSION_INDEX": "Bad"}, clear=True):
            with pytest.raises(ConfigurationError) as exc_info:
                create_settings_for_environment(Environment.DEVELOPMENT)

            assert "session_index" in exc_info.value.invalid_fields
            assert "development" in str(exc_info.value)


class TestGetSettings:
    """Tests for the cached settings accessor."""

    @pytest.fixture(autouse=True)
    def clear_cache(self):
        clear_settings_cache()
        yield
        clear_settings_cache()

    def test_settings_are_cached(self):
        with patch.dict(os.environ, {"ENVIRONMENT": "development"}, clear=True):
            first = get_settings()
            second = get_settings()

        assert first is second

    def test_clear_cache_reloads(self):
        with patch.dict(os.environ, {"ENVIRONMENT": "development"}, clear=True):
            first = get_settings()
            clear_settings_cache()
            second = get_settings()

        assert first is not second

    def test_staging_environment_is_detected(self):
        env_vars = {"ENVIRONMENT": "staging", "ELASTIC_ENDPOINT": "http://localhost:9200"}
        with patch.dict(os.environ, env_vars, clear=True):
            settings = get_settings()

        assert settings.environment == Environment.STAGING
