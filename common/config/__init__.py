"""
Configuration module - Environment-driven settings shared by services.

Services subclass ``BaseAppSettings`` to add their own options.
"""

from common.config.base_settings import BaseAppSettings

__all__ = ["BaseAppSettings"]
