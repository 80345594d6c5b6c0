"""Forward-auth adapter for Traefik."""

__version__ = "0.1.0"
