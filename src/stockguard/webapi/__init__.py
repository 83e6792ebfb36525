"""Admin API for the alert engine."""

from .app import create_app

__all__ = ["create_app"]
