"""Generic preset resolution shared by every preset source.

A preset reference names a file and, optionally, a preset inside it and a
sub-preset inside that: ``file[/preset[/sub_preset]]``. Sources differ only
in how they fetch a file, so each one hands ``fetch_preset`` a callback with
the signature ``fetch(repo, file_name, endpoint, package_tag) -> Preset | None``.

Resolution distinguishes three outcomes:

- ``Found``: the preset was located
- ``Absent``: nothing usable at this source, the caller may try the next one
- ``Fatal``: the reference itself is broken and no other source can help

``collapse`` turns ``Absent`` into ``None`` and raises the error carried by
``Fatal``; it is only applied at the ``get_preset_from_endpoint`` boundary.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import structlog

from depbot.exceptions import PresetError

log = structlog.get_logger(__name__)

Preset = dict[str, Any]

FetchCallback = Callable[[str, str, str, str | None], Awaitable[Any]]


@dataclass(frozen=True)
class Found:
    preset: Preset


@dataclass(frozen=True)
class Absent:
    reason: str


@dataclass(frozen=True)
class Fatal:
    error: PresetError


PresetResult = Found | Absent | Fatal


def _lookup(document: Preset, key: str, reference: str) -> PresetResult:
    if key not in document:
        return Absent(f"Preset {key} not found in {reference}")

    value = document[key]
    if not isinstance(value, dict):
        return Fatal(PresetError(f"Preset {reference}/{key} is not a configuration mapping"))
    return Found(value)


async def fetch_preset(
    *,
    pkg_name: str,
    file_preset: str,
    preset_path: str | None,
    endpoint: str,
    package_tag: str | None = None,
    fetch: FetchCallback,
) -> PresetResult:
    """Resolve ``file_preset`` for ``pkg_name`` using the ``fetch`` callback.

    Args:
        pkg_name: Repository holding the preset files
        file_preset: Preset reference, ``file[/preset[/sub_preset]]``
        preset_path: Directory inside the repository holding the files
        endpoint: Root address the source resolves repositories against
        package_tag: Tag or branch to read the files at
        fetch: Source-specific file fetcher

    Returns:
        Found, Absent or Fatal.
    """
    parts = file_preset.split("/")
    if len(parts) > 3 or not all(parts):
        return Fatal(PresetError(f"Invalid preset name: {file_preset!r}"))

    file_name, *names = parts
    prefix = f"{preset_path.strip('/')}/" if preset_path and preset_path.strip("/") else ""

    if file_name.endswith((".json", ".json5")):
        candidates = [file_name]
    else:
        candidates = [f"{file_name}.json", f"{file_name}.json5"]

    content: Any = None
    for candidate in candidates:
        content = await fetch(pkg_name, f"{prefix}{candidate}", endpoint, package_tag)
        if content is not None:
            break

    if content is None:
        log.debug("preset_dep_not_found", pkg_name=pkg_name, preset=file_preset)
        return Absent(f"Preset file {file_name} not found in {pkg_name}")

    if not isinstance(content, dict):
        return Fatal(PresetError(f"Preset file {file_name} is not a configuration mapping"))

    result: PresetResult = Found(content)
    reference = file_name
    for name in names:
        if not isinstance(result, Found):
            break
        result = _lookup(result.preset, name, reference)
        reference = f"{reference}/{name}"

    return result


def collapse(result: PresetResult) -> Preset | None:
    """Map a resolution result onto the public ``Preset | None`` contract.

    Raises:
        PresetError: If the result is Fatal.
    """
    if isinstance(result, Found):
        return result.preset
    if isinstance(result, Absent):
        log.debug("preset_absent", reason=result.reason)
        return None
    raise result.error
