"""Configuration package."""

from wge.config.settings import Settings

__all__ = ["Settings"]
