"""Offline platform backed by a local directory tree of git repositories.

Repositories live at ``<endpoint>/<repository>/`` and are discovered with
``find``; the default branch is whatever ``HEAD`` points to. Issues, pull
requests and comments are not persisted: creating one is logged and
reported as successful, and lookups always come back empty. Branch
statuses are kept in the Session so worst-of aggregation stays observable
within one repository run.
"""

import os
import re
import subprocess
from pathlib import Path
from typing import Protocol

import aiofiles
import structlog

from depbot.enums import BranchStatus, PlatformId, PrState
from depbot.exceptions import (
    DiscoveryError,
    ParseError,
    PlatformError,
    PlatformFileNotFoundError,
    RepoNotFoundError,
)
from depbot.models.domain import (
    BranchStatusConfig,
    CreatePrConfig,
    EnsureCommentConfig,
    EnsureCommentRemovalConfig,
    EnsureIssueConfig,
    FindPrConfig,
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
from depbot.platform.base import Platform
from depbot.utils.async_subprocess import run_command

log = structlog.get_logger(__name__)


class GitWorkingCopy(Protocol):
    """Working-copy manager told about each repository ``init_repo`` opens."""

    async def init_repo(self, *, url: str, repository: str, default_branch: str, endpoint: str) -> None:
        """Prepare the local clone of ``url``."""
        ...


class MockPlatform(Platform):
    """Platform implementation over ``<endpoint>/<repository>`` directories."""

    platform_id = PlatformId.MOCK

    def __init__(self, git: GitWorkingCopy | None = None) -> None:
        """Initialize the mock platform.

        Args:
            git: Optional working-copy manager notified on every ``init_repo``
        """
        self.git = git
        self.endpoint = str(Path.home())

    async def init_platform(self, params: PlatformParams) -> PlatformResult:
        """Set the repository root; no token or network access is needed.

        Args:
            params: Only ``endpoint`` and ``git_author`` are used; a missing
                endpoint keeps the current one (the home directory by default)

        Returns:
            The effective endpoint and the configured git author
        """
        if params.endpoint:
            self.endpoint = params.endpoint
        log.debug("init_platform", platform=str(self.platform_id), endpoint=self.endpoint)
        return PlatformResult(endpoint=self.endpoint, git_author=params.git_author)

    async def init_repo(self, params: RepoParams) -> RepoResult:
        """Open a session for ``<endpoint>/<repository>``.

        The default branch is what ``HEAD`` points to, read with
        ``git rev-parse --abbrev-ref HEAD`` inside the ``.git`` directory.

        Args:
            params: Repository identifier and an optional endpoint override

        Returns:
            RepoResult with a new Session; local repositories are never forks

        Raises:
            RepoNotFoundError: If the directory is missing, is not a git
                repository, or git prints something other than one branch name
        """
        endpoint = params.endpoint or self.endpoint
        url = os.path.join(endpoint, params.repository, ".git")
        log.debug("init_repo", repository=params.repository, url=url)

        try:
            stdout, _, _ = await run_command("git", "rev-parse", "--abbrev-ref", "HEAD", cwd=url)
        except subprocess.CalledProcessError as e:
            raise RepoNotFoundError(
                f"Cannot detect default branch: {e.stderr.strip()}",
                repository=params.repository,
            ) from e
        except OSError as e:
            raise RepoNotFoundError(f"Cannot open repository: {e}", repository=params.repository) from e

        default_branch = stdout.strip()
        if not default_branch or "\n" in default_branch:
            raise RepoNotFoundError(
                f"Unexpected output from git rev-parse: {stdout!r}",
                repository=params.repository,
            )

        session = Session(
            repository=params.repository,
            default_branch=default_branch,
            endpoint=endpoint,
        )

        if self.git is not None:
            await self.git.init_repo(
                url=url,
                repository=session.repository,
                default_branch=session.default_branch,
                endpoint=session.endpoint,
            )

        return RepoResult(default_branch=default_branch, is_fork=False, session=session)

    async def get_repos(self) -> list[str]:
        """List repositories under the endpoint, relative to it and sorted.

        A directory holding a ``.git`` directory is a repository; ``find`` does
        not descend into it.

        Raises:
            DiscoveryError: If ``find`` fails, e.g. the endpoint does not exist
        """
        log.debug("autodiscovering_local_repositories", endpoint=self.endpoint)

        try:
            stdout, _, _ = await run_command(
                "find",
                self.endpoint,
                "-type",
                "d",
                "-exec",
                "test",
                "-d",
                "{}/.git",
                ";",
                "-print",
                "-prune",
            )
        except (subprocess.CalledProcessError, OSError) as e:
            raise DiscoveryError(f"Repository discovery failed under {self.endpoint}: {e}") from e

        prefix = re.compile(rf"^{re.escape(self.endpoint.rstrip('/'))}/?")
        repos = [prefix.sub("", line) for line in stdout.splitlines() if line.strip()]
        return sorted(repo for repo in repos if repo)

    async def get_issue_list(self, session: Session) -> list[Issue]:
        """Issues are not persisted; always empty."""
        log.debug("get_issue_list", repository=session.repository)
        return []

    async def find_issue(self, session: Session, title: str) -> Issue | None:
        """Always None; see ``get_issue_list``."""
        log.debug("find_issue", title=title)
        return None

    async def ensure_issue(self, session: Session, config: EnsureIssueConfig) -> str | None:
        """Log the issue that would be created and report ``"created"``."""
        log.debug("ensure_issue", title=config.title)
        log.info("issue_ensured", title=config.title, body=config.body, labels=config.labels)
        return "created"

    async def ensure_issue_closing(self, session: Session, title: str) -> None:
        """No-op."""
        log.debug("ensure_issue_closing", title=title)

    async def get_pr_list(self, session: Session) -> list[Pr]:
        """Pull requests are not persisted; always empty."""
        log.debug("get_pr_list", repository=session.repository)
        return []

    async def find_pr(self, session: Session, config: FindPrConfig) -> Pr | None:
        """Always None."""
        log.debug("find_pr", branch=config.branch_name, title=config.pr_title, state=str(config.state))
        return None

    async def get_pr(self, session: Session, number: int) -> Pr | None:
        """Always None."""
        log.debug("get_pr", number=number)
        return None

    async def get_branch_pr(self, session: Session, branch_name: str) -> Pr | None:
        """Always None."""
        log.debug("get_branch_pr", branch=branch_name)
        return None

    async def create_pr(self, session: Session, config: CreatePrConfig) -> Pr:
        """Build the open pull request described by ``config`` without storing it.

        The returned Pr has no number, since nothing assigns one.
        """
        log.debug("create_pr", source_branch=config.source_branch)
        log.info(
            "pr_created",
            source_branch=config.source_branch,
            target_branch=config.target_branch,
            title=config.pr_title,
            body=config.pr_body,
        )
        return Pr(
            source_branch=config.source_branch,
            target_branch=config.target_branch,
            title=config.pr_title,
            body=config.pr_body,
            state=PrState.OPEN,
            labels=set(config.labels or []),
        )

    async def update_pr(self, session: Session, config: UpdatePrConfig) -> None:
        """No-op."""
        log.debug("update_pr", number=config.number)

    async def merge_pr(self, session: Session, config: MergePrConfig) -> bool:
        """Report every merge as successful."""
        log.debug("merge_pr", number=config.number)
        return True

    async def delete_label(self, session: Session, number: int, label: str) -> None:
        """No-op."""
        log.debug("delete_label", number=number, label=label)

    async def get_branch_status(self, session: Session, branch_name: str) -> BranchStatus:
        """Worst status recorded for the branch in this session, green if none."""
        log.debug("get_branch_status", branch=branch_name)
        checks = session.branch_statuses.get(branch_name, {})
        return BranchStatus.worst(list(checks.values()))

    async def get_branch_status_check(
        self,
        session: Session,
        branch_name: str,
        context: str,
    ) -> BranchStatus | None:
        """Status recorded for ``context`` on the branch, or None."""
        log.debug("get_branch_status_check", branch=branch_name, context=context)
        return session.branch_statuses.get(branch_name, {}).get(context)

    async def set_branch_status(self, session: Session, config: BranchStatusConfig) -> None:
        """Record the check status in the session, replacing an earlier one."""
        log.debug("set_branch_status", branch=config.branch_name, context=config.context, state=str(config.state))
        session.branch_statuses.setdefault(config.branch_name, {})[config.context] = config.state

    async def ensure_comment(self, session: Session, config: EnsureCommentConfig) -> bool:
        """Comments are not persisted; always reports success."""
        log.debug("ensure_comment", number=config.number, key=config.topic or config.content)
        return True

    async def ensure_comment_removal(self, session: Session, config: EnsureCommentRemovalConfig) -> None:
        """No-op."""
        log.debug("ensure_comment_removal", number=config.number, key=config.topic or config.content)

    async def add_assignees(self, session: Session, number: int, assignees: list[str]) -> None:
        """No-op."""
        log.debug("add_assignees", number=number, assignees=", ".join(assignees))

    async def add_reviewers(self, session: Session, number: int, reviewers: list[str]) -> None:
        """No-op."""
        log.debug("add_reviewers", number=number, reviewers=", ".join(reviewers))

    async def filter_unavailable_users(self, session: Session, users: list[str]) -> list[str]:
        """No user can be assigned in a local tree, so nobody is returned."""
        log.debug("filter_unavailable_users", users=users)
        return []

    async def get_raw_file(
        self,
        session: Session,
        file_name: str,
        repository: str | None = None,
    ) -> str:
        """Read ``<endpoint>/<repository>/<file_name>`` as UTF-8.

        Args:
            session: Current repository session
            file_name: Path relative to the repository root
            repository: Another repository under the same endpoint

        Raises:
            PlatformFileNotFoundError: If the path is missing or not a file
            ParseError: If the content is not valid UTF-8
            PlatformError: If the file exists but cannot be read
        """
        repo = repository or session.repository
        path = Path(session.endpoint, repo, file_name)

        try:
            async with aiofiles.open(path, encoding="utf-8") as f:
                return await f.read()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as e:
            raise PlatformFileNotFoundError(file_name, repository=repo) from e
        except UnicodeDecodeError as e:
            raise ParseError(f"File is not valid UTF-8: {e}", file_name=file_name) from e
        except OSError as e:
            raise PlatformError(f"Cannot read file {file_name}: {e}") from e

    def massage_markdown(self, text: str) -> str:
        """Local text needs no rewriting."""
        return text

    async def get_repo_force_rebase(self, session: Session) -> bool:
        """Always False."""
        return False

    async def get_vulnerability_alerts(self, session: Session) -> list[VulnerabilityAlert]:
        """No advisory source is available locally."""
        log.debug("get_vulnerability_alerts", repository=session.repository)
        return []
