"""bedgate: local gateway between smart-bed firmware, its telemetry exporter and a control API."""

__version__ = "0.1.0"
