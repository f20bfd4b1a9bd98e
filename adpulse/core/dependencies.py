"""
FastAPI dependency injection module for the AdPulse backend.

Provides reusable dependencies so route handlers never reach for module-level
singletons directly:
- get_settings_dependency: Returns the cached Settings singleton
- SettingsDep: Type alias for injecting Settings into endpoints

Usage:
    @router.post("")
    async def analyze(request: AnalysisRequest, settings: SettingsDep):
        ...

In tests the dependency can be overridden:

    app.dependency_overrides[get_settings_dependency] = lambda: Settings(breakdown_workers=4)
"""

from typing import Annotated

from fastapi import Depends

from adpulse.core.config import Settings, get_settings


# =============================================================================
# Settings Dependency
# =============================================================================

def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    Thin wrapper around get_settings() so FastAPI's dependency override
    mechanism can swap settings in tests.

    Returns:
        Settings: The cached Settings instance.
    """
    return get_settings()


# =============================================================================
# Type Aliases for Dependency Injection
# =============================================================================

# Usage: async def endpoint(settings: SettingsDep)
SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]
