"""HTTP boundary of the forward-auth service."""

from traefik_tower.api.app import create_app

__all__ = ["create_app"]
