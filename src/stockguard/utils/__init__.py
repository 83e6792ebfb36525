"""Shared utilities."""

from .clock import utcnow

__all__ = ["utcnow"]
