"""Shared fixtures for the screen2screen unit and integration suites"""

import pytest
import logging
from pathlib import Path
from typing import Generator

from screen2screen.common.config import Config, ConfigLoader
from screen2screen.common.settings import settings


@pytest.fixture
def sample_config() -> Config:
    """Load the example configuration shipped at the repository root

    Returns:
        Config object with example values
    """
    config_path = Path(__file__).parent.parent / "config.yml"
    if not config_path.exists():
        pytest.skip("example config.yml missing")
    return ConfigLoader.config_load(config_path)


@pytest.fixture
def minimal_config_data() -> dict:
    """Smallest configuration dictionary config_parse accepts"""
    return {
        "host": {"port": 8080},
        "logging": {"level": "INFO", "format": "%(asctime)s - %(message)s"},
    }


@pytest.fixture
def reset_settings() -> Generator[None, None, None]:
    """Start and finish each test with an uninitialized settings singleton"""
    settings._initialized = False
    settings._config = None
    yield
    settings._initialized = False
    settings._config = None


@pytest.fixture(autouse=True)
def setup_logging(caplog):
    """Capture everything down to DEBUG"""
    caplog.set_level(logging.DEBUG)
