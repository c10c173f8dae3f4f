"""Version information for the Smart Wi-Fi Manager."""

APP_VERSION = "1.0.0"

__all__ = ["APP_VERSION"]
