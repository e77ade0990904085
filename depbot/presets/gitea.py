"""Preset source reading files from a Gitea server's contents API."""

import base64
import json
from typing import Any

import httpx
import structlog

from depbot.platform.gitea import normalize_endpoint
from depbot.presets.base import Preset, collapse, fetch_preset
from depbot.utils.connection_pool import get_shared_pool

log = structlog.get_logger(__name__)


async def fetch_json_file(
    repo: str,
    file_name: str,
    endpoint: str,
    package_tag: str | None = None,
) -> Any:
    """Fetch ``file_name`` from ``repo`` at ``package_tag`` and parse it as JSON.

    Never raises: HTTP, decoding and parse failures are logged at debug
    level and reported as None.
    """
    api_base = normalize_endpoint(endpoint)
    params = {"ref": package_tag} if package_tag else {}

    try:
        pool = await get_shared_pool(api_base)
        response = await pool.get(f"/repos/{repo}/contents/{file_name}", params=params)
        if response.status_code != 200:
            log.debug("preset_fetch_failed", error=f"HTTP {response.status_code}", repo=repo, file_name=file_name)
            return None

        content = response.json()["content"]
        return json.loads(base64.b64decode(content).decode("utf-8"))
    except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
        log.debug("preset_fetch_failed", error=str(e), repo=repo, file_name=file_name)
        return None


async def get_preset_from_endpoint(
    pkg_name: str,
    preset_name: str,
    preset_path: str | None,
    endpoint: str,
    package_tag: str | None = None,
) -> Preset | None:
    """Resolve a preset from a repository on a Gitea server."""
    result = await fetch_preset(
        pkg_name=pkg_name,
        file_preset=preset_name,
        preset_path=preset_path,
        endpoint=endpoint,
        package_tag=package_tag,
        fetch=fetch_json_file,
    )
    return collapse(result)
