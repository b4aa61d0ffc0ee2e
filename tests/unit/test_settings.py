"""Unit tests for settings singleton"""

import pytest

from screen2screen.common.config import ConfigLoader
from screen2screen.common.settings import Settings, settings


class TestSettingsSingleton:
    """Test Settings singleton pattern"""

    def test_singleton_same_instance(self, reset_settings):
        """Test that Settings() returns same instance"""
        s1 = Settings()
        s2 = Settings()
        assert s1 is s2

    def test_global_settings_is_singleton(self, reset_settings):
        """Test that global 'settings' is the singleton"""
        s = Settings()
        assert settings is s


class TestSettingsConstants:
    """Test that all constants are accessible"""

    def test_protocol_constants(self):
        assert settings.FRAME_HEADER_SIZE == 4
        assert settings.DEFAULT_SIGNALING_PORT == 8080
        assert settings.DATA_CHANNEL_LABEL == "input"

    def test_viewport_constants(self):
        assert settings.EDGE_MARGIN_FRACTION == 0.15
        assert settings.ZOOM_MIN == 1.0
        assert settings.ZOOM_MAX == 5.0


class TestSettingsConfig:
    """Test runtime configuration access"""

    def test_config_before_initialize_raises(self, reset_settings):
        fresh = Settings()
        with pytest.raises(RuntimeError, match="not initialized"):
            _ = fresh.config

    def test_fallbacks_without_config(self, reset_settings):
        fresh = Settings()
        assert fresh.cursorFeedbackInterval_get() == pytest.approx(1 / 60)
        assert fresh.maxFrameSize_get() == 1024 * 1024

    def test_values_from_config(self, reset_settings, minimal_config_data):
        minimal_config_data["protocol"] = {"max_frame_size": 4096, "cursor_feedback_hz": 30}
        fresh = Settings()
        fresh.initialize(ConfigLoader.config_parse(minimal_config_data))
        assert fresh.config.protocol.max_frame_size == 4096
        assert fresh.maxFrameSize_get() == 4096
        assert fresh.cursorFeedbackInterval_get() == pytest.approx(1 / 30)
