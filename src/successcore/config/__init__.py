# src/successcore/config/__init__.py
"""
Configuration for successcore applications.

A TOML file supplies the archive root path and a few tunables; it is read
once at startup by the application, never by the library core.
"""

from .models import CONFIG_SECTION, SuccessConfig, load_config

__all__ = ["CONFIG_SECTION", "SuccessConfig", "load_config"]
