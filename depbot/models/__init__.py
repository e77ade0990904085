"""Domain models shared by every platform backend.

Key Models:
    - Session: Per-repository context returned by ``init_repo``
    - Issue, Pr, Comment: Normalized provider entities
    - VulnerabilityAlert: Security advisory for a dependency

Example:
    >>> from depbot.models import RepoParams
    >>> result = await platform.init_repo(RepoParams(repository="org/app"))
    >>> result.session.default_branch
    'main'
"""

from depbot.models.domain import (
    BranchStatusConfig,
    Comment,
    CreatePrConfig,
    EnsureCommentConfig,
    EnsureCommentRemovalConfig,
    EnsureIssueConfig,
    FindPrConfig,
    GitAuthor,
    Issue,
    MergePrConfig,
    PlatformParams,
    PlatformResult,
    Pr,
    RepoParams,
    RepoResult,
    Session,
    UpdatePrConfig,
    VulnerabilityAlert,
)

__all__ = [
    "BranchStatusConfig",
    "Comment",
    "CreatePrConfig",
    "EnsureCommentConfig",
    "EnsureCommentRemovalConfig",
    "EnsureIssueConfig",
    "FindPrConfig",
    "GitAuthor",
    "Issue",
    "MergePrConfig",
    "PlatformParams",
    "PlatformResult",
    "Pr",
    "RepoParams",
    "RepoResult",
    "Session",
    "UpdatePrConfig",
    "VulnerabilityAlert",
]
