"""Preset resolution.

Each preset source exposes ``get_preset_from_endpoint(pkg_name, preset_name,
preset_path, endpoint, package_tag=None)``. A missing preset resolves to
None; a malformed preset reference raises ``PresetError``.

Example:
    >>> from depbot.presets import get_preset_source
    >>> get_preset = get_preset_source("mock")
    >>> await get_preset("org/presets", "default", None, "/srv/repos")
    {'extends': ['config:base']}
"""

from collections.abc import Awaitable, Callable

from depbot.enums import PlatformId
from depbot.exceptions import ConfigurationError
from depbot.presets import gitea, local
from depbot.presets.base import Absent, Fatal, Found, Preset, PresetResult, collapse, fetch_preset

PresetSource = Callable[[str, str, str | None, str, str | None], Awaitable[Preset | None]]

PRESET_SOURCES: dict[PlatformId, PresetSource] = {
    PlatformId.MOCK: local.get_preset_from_endpoint,
    PlatformId.GITEA: gitea.get_preset_from_endpoint,
}


def get_preset_source(source: str | PlatformId) -> PresetSource:
    """Return the ``get_preset_from_endpoint`` of a preset source.

    Raises:
        ConfigurationError: If the source is unknown.
    """
    try:
        return PRESET_SOURCES[PlatformId(source)]
    except ValueError as e:
        raise ConfigurationError(f"Unknown preset source: {source}") from e


__all__ = [
    "Absent",
    "Fatal",
    "Found",
    "PRESET_SOURCES",
    "Preset",
    "PresetResult",
    "PresetSource",
    "collapse",
    "fetch_preset",
    "get_preset_source",
]
