"""Configuration system for the platform layer.

Example:
    >>> from depbot.config import PlatformSettings
    >>> settings = PlatformSettings.from_yaml("depbot.yaml")
    >>> settings.platform.platform
    <PlatformId.MOCK: 'mock'>
"""

from depbot.config.settings import PlatformConfig, PlatformSettings, PresetConfig

__all__ = ["PlatformConfig", "PlatformSettings", "PresetConfig"]
