"""
Core infrastructure package for the AdPulse backend.

Provides:
- Configuration management via pydantic-settings
- FastAPI dependency injection utilities

Re-exports allow simplified imports:

    from adpulse.core import get_settings, SettingsDep
"""

from adpulse.core.config import Settings, get_settings
from adpulse.core.dependencies import get_settings_dependency, SettingsDep

__all__ = [
    'Settings',
    'get_settings',
    'get_settings_dependency',
    'SettingsDep',
]
