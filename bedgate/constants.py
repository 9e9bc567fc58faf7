"""Constants used across the bedgate package."""

from __future__ import annotations

from pathlib import Path

APP_NAME = "bedgate"
DEFAULT_CONFIG_FILENAME = f"{APP_NAME}.cfg"
DEFAULT_DATA_DIR = Path.home() / APP_NAME
DEFAULT_CONFIG_PATH = DEFAULT_DATA_DIR / DEFAULT_CONFIG_FILENAME
DEFAULT_ARCHIVE_DIR = DEFAULT_DATA_DIR / "batches"
DEFAULT_LOG_PATH = DEFAULT_DATA_DIR / "logs" / f"{APP_NAME}.log"

DEFAULT_CONTROL_SOCKET_PATH = Path("/deviceinfo/dac.sock")
DEFAULT_RESPONSE_TIMEOUT_SECONDS = 0.05

DEFAULT_TELEMETRY_HOST = "127.0.0.1"
DEFAULT_TELEMETRY_PORT = 1337
DEFAULT_IDLE_TIMEOUT_SECONDS = 60.0
DEFAULT_READ_CHUNK_BYTES = 4096

DEFAULT_API_HOST = "127.0.0.1"
DEFAULT_API_PORT = 8000

TELEMETRY_PROTOCOL = "raw"
