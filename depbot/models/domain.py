"""
Domain models for the platform abstraction layer.

These dataclasses are the normalized representation every backend converts
its provider-specific payloads into. Parameter objects (``*Config``,
``*Params``) describe the inputs of Platform operations so the operation
signatures stay identical across backends.

Example:
    Opening a repository session and creating a pull request::

        result = await platform.init_repo(RepoParams(repository="org/app"))
        pr = await platform.create_pr(
            result.session,
            CreatePrConfig(
                source_branch="depbot/lodash-4.x",
                target_branch=result.default_branch,
                pr_title="Update lodash to v4.17.21",
                pr_body="This PR updates lodash.",
            ),
        )
"""

from dataclasses import dataclass, field
from typing import Any

from depbot.enums import BranchStatus, PrState


@dataclass
class Session:
    """Per-repository context established by ``init_repo``.

    A new Session is created on every ``init_repo`` call; nothing survives
    from a previous repository. The caller owns it and passes it to every
    Platform operation.
    """

    repository: str
    """Repository identifier relative to the platform root (e.g. "org/app")."""

    default_branch: str
    """Branch that pull requests target unless told otherwise."""

    endpoint: str
    """Root address the repository was resolved against."""

    is_fork: bool = False
    """Whether the repository is a fork of another repository."""

    branch_statuses: dict[str, dict[str, BranchStatus]] = field(default_factory=dict)
    """Per-branch check statuses, keyed by branch name then context.

    Only used by backends that do not persist statuses server-side.
    """


@dataclass
class GitAuthor:
    """Author identity used for commits."""

    name: str
    email: str

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>"


@dataclass
class PlatformParams:
    """Process-wide connection parameters for ``init_platform``."""

    endpoint: str | None = None
    token: str | None = None
    git_author: str | None = None


@dataclass
class PlatformResult:
    """Outcome of ``init_platform``."""

    endpoint: str
    git_author: str | None = None


@dataclass
class RepoParams:
    """Parameters for ``init_repo``.

    ``endpoint`` falls back to the endpoint set by ``init_platform``.
    """

    repository: str
    endpoint: str | None = None


@dataclass
class RepoResult:
    """Outcome of ``init_repo``."""

    default_branch: str
    is_fork: bool
    session: Session


@dataclass
class Issue:
    """An issue from any backend."""

    title: str
    body: str = ""
    number: int | None = None
    state: str = "open"
    labels: set[str] = field(default_factory=set)


@dataclass
class Pr:
    """A pull request (merge request) from any backend."""

    source_branch: str
    target_branch: str
    title: str
    body: str = ""
    state: PrState = PrState.OPEN
    labels: set[str] = field(default_factory=set)
    number: int | None = None


@dataclass
class Comment:
    """An issue or pull request comment."""

    id: int
    body: str


@dataclass
class VulnerabilityAlert:
    """A security advisory affecting a dependency of the repository."""

    package_name: str
    ecosystem: str
    vulnerable_range: str
    patched_version: str | None = None
    severity: str | None = None


@dataclass
class EnsureIssueConfig:
    """Parameters for ``ensure_issue``.

    Attributes:
        title: Title the issue is upserted by
        body: Desired issue body
        reuse_title: Alternative title of an existing issue to take over
        labels: Labels to set on the issue
        once: Never touch an issue again once it has been closed
        should_reopen: Reopen a closed matching issue instead of skipping it
    """

    title: str
    body: str
    reuse_title: str | None = None
    labels: list[str] | None = None
    once: bool = False
    should_reopen: bool = True


@dataclass
class FindPrConfig:
    """Parameters for ``find_pr``."""

    branch_name: str
    pr_title: str | None = None
    state: PrState = PrState.ALL


@dataclass
class CreatePrConfig:
    """Parameters for ``create_pr``."""

    source_branch: str
    target_branch: str
    pr_title: str
    pr_body: str
    draft_pr: bool = False
    labels: list[str] | None = None
    platform_options: dict[str, Any] = field(default_factory=dict)


@dataclass
class UpdatePrConfig:
    """Parameters for ``update_pr``."""

    number: int
    pr_title: str
    pr_body: str | None = None
    state: PrState | None = None
    platform_options: dict[str, Any] = field(default_factory=dict)


@dataclass
class MergePrConfig:
    """Parameters for ``merge_pr``."""

    number: int
    branch_name: str | None = None


@dataclass
class BranchStatusConfig:
    """Parameters for ``set_branch_status``."""

    branch_name: str
    context: str
    description: str
    state: BranchStatus
    url: str | None = None


@dataclass
class EnsureCommentConfig:
    """Parameters for ``ensure_comment``."""

    number: int
    content: str
    topic: str | None = None


@dataclass
class EnsureCommentRemovalConfig:
    """Parameters for ``ensure_comment_removal``.

    Exactly one of ``topic`` or ``content`` should be given.
    """

    number: int
    topic: str | None = None
    content: str | None = None
