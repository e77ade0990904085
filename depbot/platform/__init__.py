"""Platform backends implementing the hosting-provider contract.

Key Components:
    - Platform: Abstract base every backend implements
    - MockPlatform: Offline backend over a directory of git repositories
    - GiteaPlatform: Gitea REST API backend
    - create_platform: Selects a backend from settings

Example:
    >>> from depbot.platform import MockPlatform
    >>> from depbot.models import PlatformParams, RepoParams
    >>> platform = MockPlatform()
    >>> await platform.init_platform(PlatformParams(endpoint="/srv/repos"))
    >>> result = await platform.init_repo(RepoParams(repository="org/app"))
    >>> await platform.get_branch_status(result.session, "main")
    <BranchStatus.GREEN: 'green'>
"""

from depbot.platform.base import Platform
from depbot.platform.factory import create_platform, initialize_platform, platform_params
from depbot.platform.gitea import GiteaPlatform
from depbot.platform.mock import MockPlatform

__all__ = [
    "GiteaPlatform",
    "MockPlatform",
    "Platform",
    "create_platform",
    "initialize_platform",
    "platform_params",
]
