"""
Unit tests for configuration loading and validation.

These tests ensure:
  1. Config loads from environment variables correctly
  2. Required fields and ranges are validated at startup
  3. Type conversions work (e.g., strings to ints)
"""

import pytest
from unittest.mock import patch
from src.config import Config, validate_config


class TestConfigLoading:
    """Test configuration loading from environment."""

    @patch.dict("os.environ", {"FIREBASE_PROJECT_ID": "study-match"})
    def test_required_config_loads(self):
        """Required config fields should load from environment."""
        config = Config(_env_file=None)
        assert config.FIREBASE_PROJECT_ID == "study-match"

    @patch.dict("os.environ", {"FIREBASE_PROJECT_ID": "test-project", "MATCH_MIN_SCORE": "45"})
    def test_integer_config_conversion(self):
        """Integer environment variables should be converted to int."""
        config = Config(_env_file=None)
        assert isinstance(config.MATCH_MIN_SCORE, int)
        assert config.MATCH_MIN_SCORE == 45

    @patch.dict("os.environ", {"FIREBASE_PROJECT_ID": "test-project", "DEBUG": "false"})
    def test_boolean_config_conversion(self):
        config = Config(_env_file=None)
        assert config.DEBUG is False

    @patch.dict("os.environ", {"FIREBASE_PROJECT_ID": "test-project"}, clear=True)
    def test_matching_defaults(self):
        """Matching tunables default to minScore 30 and limit 20."""
        config = Config(_env_file=None)
        assert config.MATCH_MIN_SCORE == 30
        assert config.MATCH_LIMIT == 20
        assert config.MAX_CANDIDATES == 500
        assert config.PORT == 8000
        assert config.USERS_COLLECTION == "users"


class TestConfigValidation:
    """Test configuration validation function."""

    @staticmethod
    def _valid(mock_config):
        mock_config.FIREBASE_PROJECT_ID = "test"
        mock_config.MATCH_MIN_SCORE = 30
        mock_config.MATCH_LIMIT = 20
        mock_config.MAX_CANDIDATES = 500
        mock_config.AI_SERVICE_TOKEN = ""

    @patch("src.config.config")
    def test_validate_firebase_required(self, mock_config):
        self._valid(mock_config)
        mock_config.FIREBASE_PROJECT_ID = ""

        with pytest.raises(ValueError, match="FIREBASE_PROJECT_ID"):
            validate_config()

    @patch("src.config.config")
    def test_validate_min_score_range(self, mock_config):
        self._valid(mock_config)
        mock_config.MATCH_MIN_SCORE = 101

        with pytest.raises(ValueError, match="MATCH_MIN_SCORE"):
            validate_config()

    @patch("src.config.config")
    def test_validate_negative_limit(self, mock_config):
        self._valid(mock_config)
        mock_config.MATCH_LIMIT = -1

        with pytest.raises(ValueError, match="MATCH_LIMIT"):
            validate_config()

    @patch("src.config.config")
    def test_validate_reports_every_problem(self, mock_config):
        self._valid(mock_config)
        mock_config.FIREBASE_PROJECT_ID = ""
        mock_config.MAX_CANDIDATES = 0

        with pytest.raises(ValueError) as exc_info:
            validate_config()
        assert "FIREBASE_PROJECT_ID" in str(exc_info.value)
        assert "MAX_CANDIDATES" in str(exc_info.value)

    @patch("src.config.config")
    def test_validate_success_returns_status(self, mock_config):
        self._valid(mock_config)
        mock_config.AI_SERVICE_TOKEN = "secret"

        result = validate_config()
        assert result["firebase"] == "✓ Configured"
        assert result["service_token"] == "✓ Required"
        assert "minScore=30" in result["matching"]
