"""Tests for depbot/presets - preset reference resolution and the local source."""

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from depbot.enums import PlatformId
from depbot.exceptions import ConfigurationError, PresetError
from depbot.presets import PRESET_SOURCES, gitea, get_preset_source, local
from depbot.presets.base import Absent, Fatal, Found, collapse, fetch_preset


def fake_fetch(files: dict[str, object]) -> AsyncMock:
    """Fetch callback serving ``files`` keyed by ``repo:file_name``."""

    async def _fetch(repo, file_name, endpoint, package_tag):
        return files.get(f"{repo}:{file_name}")

    return AsyncMock(side_effect=_fetch)


# =============================================================================
# fetch_preset
# =============================================================================


class TestFetchPreset:
    """Tests for the generic resolution algorithm."""

    @pytest.mark.asyncio
    async def test_extensionless_tries_json_then_json5(self) -> None:
        fetch = fake_fetch({"org/presets:default.json5": {"extends": ["base"]}})

        result = await fetch_preset(
            pkg_name="org/presets", file_preset="default", preset_path=None, endpoint="/srv", fetch=fetch
        )

        assert result == Found({"extends": ["base"]})
        tried = [call.args[1] for call in fetch.await_args_list]
        assert tried == ["default.json", "default.json5"]

    @pytest.mark.asyncio
    async def test_json_wins_over_json5(self) -> None:
        fetch = fake_fetch({"p:default.json": {"a": 1}, "p:default.json5": {"a": 2}})

        result = await fetch_preset(pkg_name="p", file_preset="default", preset_path=None, endpoint="/", fetch=fetch)

        assert result == Found({"a": 1})
        assert fetch.await_count == 1

    @pytest.mark.asyncio
    async def test_explicit_extension_is_used_as_is(self) -> None:
        fetch = fake_fetch({"p:base.json5": {"a": 1}})

        result = await fetch_preset(pkg_name="p", file_preset="base.json5", preset_path=None, endpoint="/", fetch=fetch)

        assert result == Found({"a": 1})
        fetch.assert_awaited_once_with("p", "base.json5", "/", None)

    @pytest.mark.asyncio
    async def test_preset_path_and_tag_are_passed(self) -> None:
        fetch = fake_fetch({"p:configs/base.json": {"a": 1}})

        result = await fetch_preset(
            pkg_name="p",
            file_preset="base",
            preset_path="/configs/",
            endpoint="https://gitea.example.com",
            package_tag="v1.2.0",
            fetch=fetch,
        )

        assert result == Found({"a": 1})
        fetch.assert_awaited_once_with("p", "configs/base.json", "https://gitea.example.com", "v1.2.0")

    @pytest.mark.asyncio
    async def test_nested_presets(self) -> None:
        document = {"group": {"sub": {"labels": ["x"]}, "other": {}}}
        fetch = fake_fetch({"p:file.json": document})

        preset = await fetch_preset(pkg_name="p", file_preset="file/group", preset_path=None, endpoint="/", fetch=fetch)
        sub = await fetch_preset(
            pkg_name="p", file_preset="file/group/sub", preset_path=None, endpoint="/", fetch=fetch
        )

        assert preset == Found(document["group"])
        assert sub == Found({"labels": ["x"]})

    @pytest.mark.asyncio
    async def test_missing_file_is_absent(self) -> None:
        result = await fetch_preset(
            pkg_name="p", file_preset="default", preset_path=None, endpoint="/", fetch=fake_fetch({})
        )

        assert isinstance(result, Absent)

    @pytest.mark.asyncio
    async def test_missing_key_is_absent(self) -> None:
        fetch = fake_fetch({"p:file.json": {"group": {}}})

        first = await fetch_preset(pkg_name="p", file_preset="file/nope", preset_path=None, endpoint="/", fetch=fetch)
        second = await fetch_preset(
            pkg_name="p", file_preset="file/group/nope", preset_path=None, endpoint="/", fetch=fetch
        )

        assert isinstance(first, Absent)
        assert isinstance(second, Absent)

    @pytest.mark.parametrize("name", ["a/b/c/d", "", "file//sub", "/file"])
    @pytest.mark.asyncio
    async def test_malformed_name_is_fatal(self, name: str) -> None:
        fetch = fake_fetch({})

        result = await fetch_preset(pkg_name="p", file_preset=name, preset_path=None, endpoint="/", fetch=fetch)

        assert isinstance(result, Fatal)
        fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_non_mapping_content_is_fatal(self) -> None:
        fetch = fake_fetch({"p:list.json": ["a"], "p:file.json": {"scalar": 3}})

        file_result = await fetch_preset(pkg_name="p", file_preset="list", preset_path=None, endpoint="/", fetch=fetch)
        key_result = await fetch_preset(
            pkg_name="p", file_preset="file/scalar", preset_path=None, endpoint="/", fetch=fetch
        )

        assert isinstance(file_result, Fatal)
        assert isinstance(key_result, Fatal)


class TestCollapse:
    """Tests for collapse."""

    def test_found(self) -> None:
        assert collapse(Found({"a": 1})) == {"a": 1}

    def test_absent(self) -> None:
        assert collapse(Absent("missing")) is None

    def test_fatal(self) -> None:
        with pytest.raises(PresetError, match="broken"):
            collapse(Fatal(PresetError("broken")))


# =============================================================================
# Local source
# =============================================================================


class TestLocalSource:
    """Tests for depbot.presets.local."""

    @pytest.fixture
    def presets_repo(self, repo_root: Path) -> Path:
        path = repo_root / "org" / "presets"
        path.mkdir(parents=True)
        return path

    @pytest.mark.asyncio
    async def test_fetch_json_file(self, presets_repo: Path, repo_root: Path) -> None:
        (presets_repo / "default.json").write_text(json.dumps({"extends": ["base"]}), encoding="utf-8")

        result = await local.fetch_json_file("org/presets", "default.json", str(repo_root))

        assert result == {"extends": ["base"]}

    @pytest.mark.asyncio
    async def test_missing_file_logs_and_returns_none(self, repo_root: Path) -> None:
        with patch("depbot.presets.local.log") as mock_log:
            result = await local.fetch_json_file("org/presets", "missing.json", str(repo_root))

        assert result is None
        mock_log.debug.assert_called_once()
        event, = mock_log.debug.call_args.args
        assert event == "preset_fetch_failed"
        assert mock_log.debug.call_args.kwargs["repo"] == "org/presets"
        assert "error" in mock_log.debug.call_args.kwargs

    @pytest.mark.asyncio
    async def test_invalid_json_returns_none(self, presets_repo: Path, repo_root: Path) -> None:
        (presets_repo / "bad.json").write_text("{ not json", encoding="utf-8")

        assert await local.fetch_json_file("org/presets", "bad.json", str(repo_root)) is None

    @pytest.mark.asyncio
    async def test_json5_file_is_parsed_strictly(self, presets_repo: Path, repo_root: Path) -> None:
        (presets_repo / "lenient.json5").write_text("{ a: 1 }", encoding="utf-8")

        assert await local.fetch_json_file("org/presets", "lenient.json5", str(repo_root)) is None

    @pytest.mark.asyncio
    async def test_get_preset_from_endpoint(self, presets_repo: Path, repo_root: Path) -> None:
        (presets_repo / "default.json").write_text(
            json.dumps({"extends": ["base"], "strict": {"rangeStrategy": "pin"}}), encoding="utf-8"
        )

        whole = await local.get_preset_from_endpoint("org/presets", "default", None, str(repo_root))
        nested = await local.get_preset_from_endpoint("org/presets", "default/strict", None, str(repo_root))

        assert whole["extends"] == ["base"]
        assert nested == {"rangeStrategy": "pin"}

    @pytest.mark.asyncio
    async def test_preset_path(self, presets_repo: Path, repo_root: Path) -> None:
        (presets_repo / "configs").mkdir()
        (presets_repo / "configs" / "base.json").write_text("{}", encoding="utf-8")

        assert await local.get_preset_from_endpoint("org/presets", "base", "configs", str(repo_root)) == {}

    @pytest.mark.asyncio
    async def test_absent_preset_is_none(self, repo_root: Path) -> None:
        assert await local.get_preset_from_endpoint("org/presets", "default", None, str(repo_root)) is None

    @pytest.mark.asyncio
    async def test_malformed_name_raises(self, repo_root: Path) -> None:
        with pytest.raises(PresetError):
            await local.get_preset_from_endpoint("org/presets", "a/b/c/d", None, str(repo_root))


# =============================================================================
# Registry
# =============================================================================


class TestRegistry:
    """Tests for get_preset_source."""

    def test_sources(self) -> None:
        assert get_preset_source("mock") is local.get_preset_from_endpoint
        assert get_preset_source(PlatformId.GITEA) is gitea.get_preset_from_endpoint
        assert set(PRESET_SOURCES) == set(PlatformId)

    def test_unknown_source(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown preset source"):
            get_preset_source("bitbucket")
