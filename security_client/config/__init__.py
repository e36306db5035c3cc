"""Configuration module for the security client."""
from .settings import ClientConfig, load_settings

__all__ = ["ClientConfig", "load_settings"]
