"""Configuration module for Traefik Tower."""

from traefik_tower.config.settings import AuthType, Settings, get_settings

__all__ = ["AuthType", "Settings", "get_settings"]
