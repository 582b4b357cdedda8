"""Configuration module - environment-driven run settings."""

from .settings import Settings, DEFAULT_EXCEPTIONS_FILE, DEFAULT_EXCEPTIONS_SCHEMA

__all__ = ["Settings", "DEFAULT_EXCEPTIONS_FILE", "DEFAULT_EXCEPTIONS_SCHEMA"]
