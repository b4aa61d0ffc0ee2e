"""Configuration file loading and management"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


@dataclass
class HostConfig:
    """Controlled-side (signaling server) settings"""
    bind_address: str
    port: int
    display: Optional[str]
    screen_scale: float


@dataclass
class PeerConfig:
    """Statically configured host the viewer may dial"""
    id: str
    name: str
    address: str
    port: int


@dataclass
class ViewerConfig:
    """Controlling-side (signaling client) settings"""
    connect_timeout: float
    resolve_timeout: float
    peers: List[PeerConfig] = field(default_factory=list)


@dataclass
class ProtocolConfig:
    """Protocol configuration settings"""
    max_frame_size: int
    cursor_feedback_hz: float


@dataclass
class ViewportConfig:
    """Auto-pan tuning"""
    edge_margin: float
    min_zoom: float
    max_zoom: float
    tick_hz: float


@dataclass
class LoggingConfig:
    """Logging configuration settings"""
    level: str
    file: Optional[str]
    format: str


@dataclass
class Config:
    """Complete application configuration"""
    host: HostConfig
    viewer: ViewerConfig
    protocol: ProtocolConfig
    viewport: ViewportConfig
    logging: LoggingConfig


class ConfigLoader:
    """Loads and parses configuration from YAML files"""

    DEFAULT_CONFIG_PATHS = [
        "config.yml",
        "~/.config/screen2screen/config.yml",
        "/etc/screen2screen/config.yml",
    ]

    @staticmethod
    def configFile_find() -> Optional[Path]:
        """
        Find configuration file in standard locations

        Returns:
            Path to config file, or None if not found
        """
        for config_path in ConfigLoader.DEFAULT_CONFIG_PATHS:
            path = Path(config_path).expanduser().resolve()
            if path.exists() and path.is_file():
                return path
        return None

    @staticmethod
    def yaml_load(file_path: Path) -> Dict[str, Any]:
        """
        Load YAML configuration file

        Args:
            file_path: Path to YAML file

        Returns:
            Parsed configuration dictionary

        Raises:
            FileNotFoundError: If file does not exist
            yaml.YAMLError: If file is not valid YAML
        """
        with open(file_path, "r") as f:
            data = yaml.safe_load(f)

        if not isinstance(data, dict):
            raise ValueError(f"Config file {file_path} must contain a YAML dictionary")

        return data

    @staticmethod
    def config_parse(data: Dict[str, Any]) -> Config:
        """
        Parse configuration dictionary into Config object

        Sections other than `host` and `logging` may be omitted; the
        defaults match the reference deployment (port 8080, 60 Hz feedback).

        Args:
            data: Raw configuration dictionary

        Returns:
            Parsed Config object

        Raises:
            KeyError: If required configuration keys are missing
        """
        host_data = data["host"]
        host = HostConfig(
            bind_address=host_data.get("bind_address", "0.0.0.0"),
            port=host_data["port"],
            display=host_data.get("display"),
            screen_scale=float(host_data.get("screen_scale", 1.0)),
        )

        viewer_data = data.get("viewer") or {}
        peers = [
            PeerConfig(
                id=str(peer_data.get("id", peer_data["name"])),
                name=peer_data["name"],
                address=peer_data["address"],
                port=peer_data.get("port", host.port),
            )
            for peer_data in viewer_data.get("peers") or []
        ]
        viewer = ViewerConfig(
            connect_timeout=float(viewer_data.get("connect_timeout", 5.0)),
            resolve_timeout=float(viewer_data.get("resolve_timeout", 5.0)),
            peers=peers,
        )

        protocol_data = data.get("protocol") or {}
        protocol = ProtocolConfig(
            max_frame_size=protocol_data.get("max_frame_size", 1024 * 1024),
            cursor_feedback_hz=float(protocol_data.get("cursor_feedback_hz", 60.0)),
        )

        viewport_data = data.get("viewport") or {}
        viewport = ViewportConfig(
            edge_margin=float(viewport_data.get("edge_margin", 0.15)),
            min_zoom=float(viewport_data.get("min_zoom", 1.0)),
            max_zoom=float(viewport_data.get("max_zoom", 5.0)),
            tick_hz=float(viewport_data.get("tick_hz", 60.0)),
        )
        if not 0.0 <= viewport.edge_margin < 0.5:
            raise ValueError(f"viewport.edge_margin must be in [0, 0.5), got {viewport.edge_margin}")
        if viewport.tick_hz <= 0:
            raise ValueError(f"viewport.tick_hz must be positive, got {viewport.tick_hz}")
        if not 1.0 <= viewport.min_zoom <= viewport.max_zoom:
            raise ValueError(
                f"viewport zoom range must satisfy 1 <= min_zoom <= max_zoom, "
                f"got {viewport.min_zoom}..{viewport.max_zoom}"
            )

        logging_data = data["logging"]
        logging = LoggingConfig(
            level=logging_data["level"],
            file=logging_data.get("file"),
            format=logging_data["format"],
        )

        return Config(
            host=host,
            viewer=viewer,
            protocol=protocol,
            viewport=viewport,
            logging=logging,
        )

    @staticmethod
    def config_load(file_path: Optional[Path] = None) -> Config:
        """
        Load configuration from file

        Args:
            file_path: Optional path to config file. If None, searches standard locations.

        Returns:
            Parsed Config object

        Raises:
            FileNotFoundError: If config file not found
            ValueError: If config file is invalid
        """
        if file_path is None:
            file_path = ConfigLoader.configFile_find()
            if file_path is None:
                raise FileNotFoundError(
                    f"Config file not found in standard locations: "
                    f"{ConfigLoader.DEFAULT_CONFIG_PATHS}"
                )

        data = ConfigLoader.yaml_load(file_path)
        return ConfigLoader.config_parse(data)

    @staticmethod
    def configWithOverrides_load(
        file_path: Optional[Path] = None,
        **overrides: Any
    ) -> Config:
        """
        Load configuration and apply command-line overrides

        Args:
            file_path: Optional path to config file
            **overrides: Key-value pairs to override config values

        Returns:
            Config object with overrides applied

        Example:
            config = ConfigLoader.configWithOverrides_load(
                bind_address="127.0.0.1",
                port=8080
            )
        """
        config = ConfigLoader.config_load(file_path)

        if overrides.get("bind_address") is not None:
            config.host.bind_address = overrides["bind_address"]
        if overrides.get("port") is not None:
            config.host.port = overrides["port"]
        if overrides.get("display") is not None:
            config.host.display = overrides["display"]
        if overrides.get("log_level") is not None:
            config.logging.level = overrides["log_level"]

        return config
