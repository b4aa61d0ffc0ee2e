"""Application settings singleton - single source of truth for configuration

This module provides a singleton Settings class that consolidates:
1. Protocol-level constants (must match between host/viewer)
2. Application constants (timing, margins, zoom limits)
3. Runtime configuration from config.yml

Usage:
    from screen2screen.common.settings import settings

    # Initialize once at startup with loaded config
    config = ConfigLoader.config_load()
    settings.initialize(config)

    # Use anywhere in the application
    header = payload[: settings.FRAME_HEADER_SIZE]
    interval = settings.cursorFeedbackInterval_get()
"""

from typing import Optional

from screen2screen.common.config import Config


class Settings:
    """Singleton settings manager combining config.yml and protocol constants

    The singleton pattern ensures all parts of the application use the same
    configuration values and protocol constants.
    """

    _instance: Optional["Settings"] = None

    def __new__(cls) -> "Settings":
        """Ensure only one Settings instance exists"""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        """Initialize settings singleton (only runs once)"""
        if hasattr(self, "_initialized"):
            return
        self._initialized = True
        self._config: Optional[Config] = None

    def initialize(self, config: Config) -> None:
        """
        Initialize with loaded configuration

        Args:
            config: Loaded application configuration
        """
        self._config = config

    # =========================================================================
    # Protocol Constants
    # =========================================================================

    FRAME_HEADER_SIZE: int = 4
    """Length prefix size in bytes (unsigned 32-bit, big-endian)"""

    DEFAULT_SIGNALING_PORT: int = 8080
    """Well-known TCP port of the host's signaling listener"""

    DEFAULT_MAX_FRAME_SIZE: int = 1024 * 1024
    """Largest accepted frame payload unless config overrides it

    Session descriptions are a few kilobytes; anything near this size is a
    corrupt or hostile length prefix.
    """

    DATA_CHANNEL_LABEL: str = "input"
    """Label of the data channel carrying input events and cursor feedback"""

    # =========================================================================
    # Cursor Feedback Constants
    # =========================================================================

    CURSOR_FEEDBACK_INTERVAL_SEC: float = 1.0 / 60.0
    """Minimum spacing between cursor feedback messages from the host (seconds)"""

    # =========================================================================
    # Viewport Constants
    # =========================================================================

    EDGE_MARGIN_FRACTION: float = 0.15
    """Fraction of the visible region kept between the cursor and any edge"""

    ZOOM_MIN: float = 1.0
    ZOOM_MAX: float = 5.0

    # =========================================================================
    # Discovery Constants
    # =========================================================================

    PEER_RESOLVE_TIMEOUT_SEC: float = 5.0
    """Bounded wait for resolving a peer before a session exists

    Expiry is a lookup failure, never an empty success.
    """

    # =========================================================================
    # Runtime Configuration Access
    # =========================================================================

    @property
    def config(self) -> Config:
        """
        Get loaded configuration object

        Raises:
            RuntimeError: If initialize() has not been called
        """
        if self._config is None:
            raise RuntimeError("Settings not initialized. Call settings.initialize(config) first.")
        return self._config

    def cursorFeedbackInterval_get(self) -> float:
        """
        Resolve cursor feedback spacing from config, falling back to the constant

        Returns:
            Interval in seconds
        """
        if self._config is None or self._config.protocol.cursor_feedback_hz <= 0:
            return self.CURSOR_FEEDBACK_INTERVAL_SEC
        return 1.0 / self._config.protocol.cursor_feedback_hz

    def maxFrameSize_get(self) -> int:
        """Resolve the frame size cap from config, falling back to the constant"""
        if self._config is None:
            return self.DEFAULT_MAX_FRAME_SIZE
        return self._config.protocol.max_frame_size


# Global singleton instance
settings = Settings()
"""Global settings singleton instance

Import this anywhere in the application:
    from screen2screen.common.settings import settings
"""
