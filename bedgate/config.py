"""Configuration loader for bedgate."""

from __future__ import annotations

from configparser import ConfigParser
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from . import constants


@dataclass(slots=True)
class ControlConfig:
    socket_path: Path = constants.DEFAULT_CONTROL_SOCKET_PATH
    response_timeout_seconds: float = constants.DEFAULT_RESPONSE_TIMEOUT_SECONDS


@dataclass(slots=True)
class TelemetryConfig:
    host: str = constants.DEFAULT_TELEMETRY_HOST
    port: int = constants.DEFAULT_TELEMETRY_PORT
    idle_timeout_seconds: float = constants.DEFAULT_IDLE_TIMEOUT_SECONDS
    read_chunk_bytes: int = constants.DEFAULT_READ_CHUNK_BYTES
    archive_dir: Path = field(default_factory=lambda: constants.DEFAULT_ARCHIVE_DIR)


@dataclass(slots=True)
class ApiConfig:
    host: str = constants.DEFAULT_API_HOST
    port: int = constants.DEFAULT_API_PORT


@dataclass(slots=True)
class LoggingConfig:
    level: str = "INFO"
    path: Optional[Path] = constants.DEFAULT_LOG_PATH
    log_network: bool = False


@dataclass(slots=True)
class GatewayConfig:
    control: ControlConfig
    telemetry: TelemetryConfig
    api: ApiConfig
    logging: LoggingConfig
    raw: ConfigParser
    path: Path


def _get_float(
    parser: ConfigParser, section: str, option: str, default: float
) -> float:
    try:
        value = parser.getfloat(section, option, fallback=default)
    except ValueError:
        return default
    return value if value > 0 else default


def _get_int(parser: ConfigParser, section: str, option: str, default: int) -> int:
    try:
        value = parser.getint(section, option, fallback=default)
    except ValueError:
        return default
    return value if value >= 0 else default


def load_config(path: Optional[Path] = None) -> GatewayConfig:
    """Load configuration from disk, applying defaults where necessary."""

    config_path = path or constants.DEFAULT_CONFIG_PATH
    parser = ConfigParser()
    parser.read_dict(
        {
            "control": {
                "socket_path": str(constants.DEFAULT_CONTROL_SOCKET_PATH),
                "response_timeout_seconds": str(
                    constants.DEFAULT_RESPONSE_TIMEOUT_SECONDS
                ),
            },
            "telemetry": {
                "host": constants.DEFAULT_TELEMETRY_HOST,
                "port": str(constants.DEFAULT_TELEMETRY_PORT),
                "idle_timeout_seconds": str(constants.DEFAULT_IDLE_TIMEOUT_SECONDS),
                "read_chunk_bytes": str(constants.DEFAULT_READ_CHUNK_BYTES),
                "archive_dir": str(constants.DEFAULT_ARCHIVE_DIR),
            },
            "api": {
                "host": constants.DEFAULT_API_HOST,
                "port": str(constants.DEFAULT_API_PORT),
            },
            "logging": {
                "level": "INFO",
                "path": str(constants.DEFAULT_LOG_PATH),
                "log_network": "false",
            },
        }
    )

    if config_path.exists():
        parser.read(config_path)

    control = ControlConfig(
        socket_path=Path(parser.get("control", "socket_path")).expanduser(),
        response_timeout_seconds=_get_float(
            parser,
            "control",
            "response_timeout_seconds",
            constants.DEFAULT_RESPONSE_TIMEOUT_SECONDS,
        ),
    )

    telemetry = TelemetryConfig(
        host=parser.get("telemetry", "host"),
        port=_get_int(parser, "telemetry", "port", constants.DEFAULT_TELEMETRY_PORT),
        idle_timeout_seconds=_get_float(
            parser,
            "telemetry",
            "idle_timeout_seconds",
            constants.DEFAULT_IDLE_TIMEOUT_SECONDS,
        ),
        read_chunk_bytes=max(
            1,
            _get_int(
                parser,
                "telemetry",
                "read_chunk_bytes",
                constants.DEFAULT_READ_CHUNK_BYTES,
            ),
        ),
        archive_dir=Path(parser.get("telemetry", "archive_dir")).expanduser(),
    )

    api = ApiConfig(
        host=parser.get("api", "host"),
        port=_get_int(parser, "api", "port", constants.DEFAULT_API_PORT),
    )

    log_path_value = parser.get("logging", "path", fallback="").strip()
    logging_config = LoggingConfig(
        level=parser.get("logging", "level", fallback="INFO"),
        path=Path(log_path_value).expanduser() if log_path_value else None,
        log_network=parser.getboolean("logging", "log_network", fallback=False),
    )

    return GatewayConfig(
        control=control,
        telemetry=telemetry,
        api=api,
        logging=logging_config,
        raw=parser,
        path=config_path,
    )


def save_config(config: GatewayConfig) -> None:
    """Persist the current configuration to disk."""

    config_path = config.path
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w", encoding="utf-8") as stream:
        config.raw.write(stream)
