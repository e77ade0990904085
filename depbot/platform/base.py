"""
Abstract base class for platform backends.

This module defines the contract every hosting backend (and the offline
mock) implements. The orchestrator selects one implementation at startup,
calls ``init_platform`` once, then ``init_repo`` per repository and passes
the returned Session into every further call.
"""

import json
from abc import ABC, abstractmethod
from typing import Any

import json5
import structlog

from depbot.enums import BranchStatus, PlatformId
from depbot.exceptions import ParseError
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

log = structlog.get_logger(__name__)


def parse_json_content(content: str, file_name: str) -> Any:
    """Parse file content as JSON5 or strict JSON depending on the file name.

    Args:
        content: Raw file text
        file_name: Name used to select the parser (``.json5`` -> JSON5)

    Returns:
        The parsed document

    Raises:
        ParseError: If the content is malformed for the selected parser
    """
    try:
        if file_name.endswith(".json5"):
            return json5.loads(content)
        return json.loads(content)
    except ValueError as e:
        raise ParseError(f"Invalid JSON content: {e}", file_name=file_name) from e


class Platform(ABC):
    """Abstract base class for platform implementations.

    Every operation must behave identically in its externally observable
    contract whatever backend is behind it. Backends map their provider
    failures onto ``depbot.exceptions``:

    - session establishment failures raise ``RepoNotFoundError``
    - file reads raise ``PlatformFileNotFoundError`` or ``ParseError``
    - transport failures raise ``ExternalServiceError``

    All I/O-bound methods are coroutines. Mutating operations must be safe to
    repeat, because network backends retry them on transient failures.
    """

    platform_id: PlatformId

    # -- Initialization -----------------------------------------------------

    @abstractmethod
    async def init_platform(self, params: PlatformParams) -> PlatformResult:
        """Configure process-wide connection settings.

        A second call reinitializes the configuration.

        Raises:
            ConfigurationError: If required connection parameters are absent.
        """
        pass

    @abstractmethod
    async def init_repo(self, params: RepoParams) -> RepoResult:
        """Open a repository and return a new Session for it.

        Raises:
            RepoNotFoundError: If the repository cannot be located or inspected.
        """
        pass

    # -- Discovery ----------------------------------------------------------

    @abstractmethod
    async def get_repos(self) -> list[str]:
        """List every repository reachable under the configured root.

        Identifiers are relative to the root. The order is deterministic
        for a fixed server or filesystem state.
        """
        pass

    # -- Issues -------------------------------------------------------------

    @abstractmethod
    async def get_issue_list(self, session: Session) -> list[Issue]:
        """List the issues of the session repository."""
        pass

    @abstractmethod
    async def find_issue(self, session: Session, title: str) -> Issue | None:
        """Find an open issue whose title matches exactly."""
        pass

    @abstractmethod
    async def ensure_issue(self, session: Session, config: EnsureIssueConfig) -> str | None:
        """Create or update an issue keyed by title or ``reuse_title``.

        Returns:
            "created", "updated", or None when policy suppressed the change.
        """
        pass

    @abstractmethod
    async def ensure_issue_closing(self, session: Session, title: str) -> None:
        """Close the open issues with this title. No-op if there are none."""
        pass

    # -- Pull requests ------------------------------------------------------

    @abstractmethod
    async def get_pr_list(self, session: Session) -> list[Pr]:
        """List the pull requests of the session repository."""
        pass

    @abstractmethod
    async def find_pr(self, session: Session, config: FindPrConfig) -> Pr | None:
        """Find a PR by source branch, optional title and state filter."""
        pass

    @abstractmethod
    async def get_pr(self, session: Session, number: int) -> Pr | None:
        """Get a pull request by number."""
        pass

    @abstractmethod
    async def get_branch_pr(self, session: Session, branch_name: str) -> Pr | None:
        """Get the open pull request whose source branch is ``branch_name``."""
        pass

    @abstractmethod
    async def create_pr(self, session: Session, config: CreatePrConfig) -> Pr:
        """Create a pull request.

        Must not create a duplicate of an open PR from the same source branch.
        """
        pass

    @abstractmethod
    async def update_pr(self, session: Session, config: UpdatePrConfig) -> None:
        """Update the title, body and/or state of a pull request."""
        pass

    @abstractmethod
    async def merge_pr(self, session: Session, config: MergePrConfig) -> bool:
        """Merge a pull request.

        Returns:
            True if merged; False if the provider refused the merge by policy.

        Raises:
            ExternalServiceError: If the provider could not be reached.
        """
        pass

    @abstractmethod
    async def delete_label(self, session: Session, number: int, label: str) -> None:
        """Remove a label from an issue or pull request."""
        pass

    # -- Branch status ------------------------------------------------------

    @abstractmethod
    async def get_branch_status(self, session: Session, branch_name: str) -> BranchStatus:
        """Worst status across every check context of the branch.

        Green when the branch has no checks.
        """
        pass

    @abstractmethod
    async def get_branch_status_check(
        self,
        session: Session,
        branch_name: str,
        context: str,
    ) -> BranchStatus | None:
        """Status of one named check, or None if it does not exist."""
        pass

    @abstractmethod
    async def set_branch_status(self, session: Session, config: BranchStatusConfig) -> None:
        """Create or update one named check on the branch."""
        pass

    # -- Comments -----------------------------------------------------------

    @abstractmethod
    async def ensure_comment(self, session: Session, config: EnsureCommentConfig) -> bool:
        """Upsert a comment keyed by topic, or by exact content without one.

        Returns:
            Whether the comment now exists in the desired state.
        """
        pass

    @abstractmethod
    async def ensure_comment_removal(self, session: Session, config: EnsureCommentRemovalConfig) -> None:
        """Delete the comment matching topic or content. No-op if absent."""
        pass

    # -- People -------------------------------------------------------------

    @abstractmethod
    async def add_assignees(self, session: Session, number: int, assignees: list[str]) -> None:
        """Assign users to an issue or pull request."""
        pass

    @abstractmethod
    async def add_reviewers(self, session: Session, number: int, reviewers: list[str]) -> None:
        """Request reviews on a pull request."""
        pass

    @abstractmethod
    async def filter_unavailable_users(self, session: Session, users: list[str]) -> list[str]:
        """Return the subset of ``users`` that can currently be assigned."""
        pass

    # -- File access --------------------------------------------------------

    @abstractmethod
    async def get_raw_file(
        self,
        session: Session,
        file_name: str,
        repository: str | None = None,
    ) -> str:
        """Read a file from a repository (default: the session repository).

        Raises:
            PlatformFileNotFoundError: If the file does not exist.
        """
        pass

    async def get_json_file(
        self,
        session: Session,
        file_name: str,
        repository: str | None = None,
    ) -> Any:
        """Read and parse a JSON or JSON5 file from a repository.

        Raises:
            PlatformFileNotFoundError: If the file does not exist.
            ParseError: If the content is malformed for the selected parser.
        """
        raw = await self.get_raw_file(session, file_name, repository)
        return parse_json_content(raw, file_name)

    # -- Misc ---------------------------------------------------------------

    @abstractmethod
    def massage_markdown(self, text: str) -> str:
        """Adapt Markdown to the provider's dialect."""
        pass

    @abstractmethod
    async def get_repo_force_rebase(self, session: Session) -> bool:
        """Whether the provider requires rebasing before a merge."""
        pass

    @abstractmethod
    async def get_vulnerability_alerts(self, session: Session) -> list[VulnerabilityAlert]:
        """List security alerts for the session repository."""
        pass

    async def close(self) -> None:
        """Release backend resources. Backends holding connections override this."""
        log.debug("platform_closed", platform=str(self.platform_id))
