"""
Configuration system using Pydantic for type-safe settings management.

Settings select the platform backend at process startup, hold its
connection parameters, and name the preset source used to resolve
``extends`` references.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from depbot.enums import PlatformId
from depbot.exceptions import ConfigurationError


class PlatformConfig(BaseModel):
    """Platform backend configuration.

    Supports environment references in YAML:
    - token: "${GITEA_TOKEN}"
    - endpoint: "${DEPBOT_ROOT:-/srv/repos}"
    """

    platform: PlatformId = Field(default=PlatformId.MOCK, description="Platform backend")
    endpoint: str | None = Field(
        default=None,
        description="Repository root directory (mock) or API base URL (gitea)",
    )
    token: SecretStr | None = Field(default=None, description="API token for network backends")
    git_author: str | None = Field(default=None, description="Commit author, 'Name <email>'")


class PresetConfig(BaseModel):
    """Where presets referenced by repository configs are resolved."""

    source: PlatformId | None = Field(default=None, description="Preset source; defaults to the platform")
    endpoint: str | None = Field(default=None, description="Preset endpoint; defaults to the platform endpoint")


class PlatformSettings(BaseSettings):
    """Main settings for the platform layer.

    Values can be overridden with ``DEPBOT_`` environment variables, using
    ``__`` for nesting (e.g. ``DEPBOT_PLATFORM__TOKEN``).
    """

    model_config = SettingsConfigDict(
        env_prefix="DEPBOT_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    platform: PlatformConfig = Field(default_factory=PlatformConfig)
    repositories: list[str] = Field(default_factory=list, description="Repositories to process; empty autodiscovers")
    presets: PresetConfig = Field(default_factory=PresetConfig)
    log_level: str = Field(default="INFO", description="Minimum log level")

    @property
    def preset_source(self) -> PlatformId:
        return self.presets.source or self.platform.platform

    @property
    def preset_endpoint(self) -> str:
        """Endpoint presets are fetched from.

        Without one configured, Gitea presets come from the public Gitea API and
        mock presets from the home directory.
        """
        endpoint = self.presets.endpoint or self.platform.endpoint
        if endpoint:
            return endpoint
        if self.preset_source == PlatformId.GITEA:
            from depbot.platform.gitea import DEFAULT_ENDPOINT

            return DEFAULT_ENDPOINT
        return str(Path.home())

    @classmethod
    def from_yaml(cls, config_path: str) -> PlatformSettings:
        """Load settings from YAML file with environment variable interpolation.

        Supports ${VAR_NAME} and ${VAR_NAME:-default} substitution.

        Raises:
            ConfigurationError: If the file is missing, unreadable, or invalid
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            yaml_content = config_file.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file: {config_path}") from e

        try:
            yaml_content = cls._interpolate_env_vars(yaml_content)
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment variable reference in config: {e}") from e

        try:
            config_dict = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML syntax in {config_path}: {e}") from e

        if config_dict is None:
            config_dict = {}
        if not isinstance(config_dict, dict):
            raise ConfigurationError("Configuration must be a YAML object, not a list or scalar")

        try:
            return cls(**config_dict)
        except ValidationError as e:
            raise ConfigurationError(f"Failed to validate configuration: {e}") from e

    @staticmethod
    def _interpolate_env_vars(content: str) -> str:
        """Replace ${VAR_NAME} and ${VAR_NAME:-default} placeholders.

        YAML comment lines are left unchanged.

        Raises:
            ValueError: If a required environment variable is not set
        """
        pattern = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default_value = match.group(2)
            value = os.getenv(var_name)

            if value is not None:
                return value
            elif default_value is not None:
                return default_value
            else:
                raise ValueError(f"Environment variable {var_name} is not set")

        def process_line(line: str) -> str:
            if line.lstrip().startswith("#"):
                return line
            return pattern.sub(replace_var, line)

        return "\n".join(process_line(line) for line in content.split("\n"))
