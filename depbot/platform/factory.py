"""Factory selecting the platform backend from configuration."""

import structlog

from depbot.config.settings import PlatformSettings
from depbot.enums import PlatformId
from depbot.exceptions import ConfigurationError
from depbot.models.domain import PlatformParams, PlatformResult
from depbot.platform.base import Platform
from depbot.platform.gitea import GiteaPlatform
from depbot.platform.mock import MockPlatform

log = structlog.get_logger(__name__)


def create_platform(settings: PlatformSettings) -> Platform:
    """Create the platform backend named in the settings.

    Raises:
        ConfigurationError: If the platform is not supported

    Example:
        >>> settings = PlatformSettings.from_yaml("depbot.yaml")
        >>> platform = create_platform(settings)
        >>> await platform.init_platform(platform_params(settings))
    """
    platform_id = settings.platform.platform

    if platform_id == PlatformId.MOCK:
        log.info("creating_mock_platform", endpoint=settings.platform.endpoint)
        return MockPlatform()

    elif platform_id == PlatformId.GITEA:
        log.info("creating_gitea_platform", endpoint=settings.platform.endpoint)
        return GiteaPlatform()

    else:
        raise ConfigurationError(f"Unsupported platform: {platform_id}. Supported platforms: mock, gitea")


def platform_params(settings: PlatformSettings) -> PlatformParams:
    """Build ``init_platform`` parameters from the settings."""
    token = settings.platform.token
    return PlatformParams(
        endpoint=settings.platform.endpoint,
        token=token.get_secret_value() if token else None,
        git_author=settings.platform.git_author,
    )


async def initialize_platform(settings: PlatformSettings) -> tuple[Platform, PlatformResult]:
    """Create the configured platform and run ``init_platform`` on it."""
    platform = create_platform(settings)
    result = await platform.init_platform(platform_params(settings))
    return platform, result
