"""Preset source reading files from ``<endpoint>/<repo>/`` on disk.

This is the preset source of the mock platform. Preset files are always
parsed as strict JSON, whatever their extension.
"""

import json
from pathlib import Path
from typing import Any

import aiofiles
import structlog

from depbot.presets.base import Preset, collapse, fetch_preset

log = structlog.get_logger(__name__)


async def fetch_json_file(
    repo: str,
    file_name: str,
    endpoint: str,
    package_tag: str | None = None,
) -> Any:
    """Read and parse ``<endpoint>/<repo>/<file_name>``.

    Never raises: a missing, unreadable or malformed file is logged at debug
    level and reported as None so resolution can move on to other sources.
    ``package_tag`` is accepted for signature compatibility and ignored;
    the working tree is read as-is.
    """
    file_path = Path(endpoint, repo, file_name)
    try:
        async with aiofiles.open(file_path, encoding="utf-8") as f:
            raw_file = await f.read()
        return json.loads(raw_file)
    except (OSError, ValueError) as e:
        log.debug("preset_fetch_failed", error=str(e), repo=repo, file_name=file_name)
        return None


async def get_preset_from_endpoint(
    pkg_name: str,
    preset_name: str,
    preset_path: str | None,
    endpoint: str,
    package_tag: str | None = None,
) -> Preset | None:
    """Resolve a preset from the local repository tree."""
    result = await fetch_preset(
        pkg_name=pkg_name,
        file_preset=preset_name,
        preset_path=preset_path,
        endpoint=endpoint,
        package_tag=package_tag,
        fetch=fetch_json_file,
    )
    return collapse(result)
