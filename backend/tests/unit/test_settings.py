"""Unit tests for application settings."""
from unittest.mock import patch

from docbridge.core.settings import Settings, get_settings


class TestSettings:
    """Test settings defaults and environment variable overrides."""

    def test_processing_defaults(self):
        settings = Settings()

        assert settings.extracted_text_limit == 5000
        assert settings.structure_field_confidence == 0.9

    def test_mapping_defaults(self):
        settings = Settings()

        assert settings.suggestion_exact_threshold == 0.8
        assert settings.suggestion_pattern_threshold == 0.5
        assert settings.similarity_candidate_limit == 3
        assert settings.min_training_samples == 2
        assert settings.feedback_default_adjustment == 0.1
        assert settings.retraining_delta_threshold == 0.2

    def test_environment_override(self):
        with patch.dict("os.environ", {"MIN_TRAINING_SAMPLES": "5", "SUGGESTION_EXACT_THRESHOLD": "0.95"}):
            settings = Settings()

        assert settings.min_training_samples == 5
        assert settings.suggestion_exact_threshold == 0.95

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
