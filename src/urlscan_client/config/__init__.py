"""Configuration management."""

from urlscan_client.config.settings import (
    ClientConfig,
    ClientSettings,
    ProxyType,
    get_settings,
)

__all__ = [
    "ClientConfig",
    "ClientSettings",
    "ProxyType",
    "get_settings",
]
