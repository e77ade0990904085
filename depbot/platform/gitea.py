"""Gitea platform implementation using direct REST API calls."""

import base64
import re
from typing import Any

import httpx
import structlog

from depbot.enums import BranchStatus, PlatformId, PrState
from depbot.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    ParseError,
    PlatformError,
    PlatformFileNotFoundError,
    RepoNotFoundError,
)
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
from depbot.platform.base import Platform
from depbot.utils.connection_pool import HTTPConnectionPool
from depbot.utils.retry import async_retry

log = structlog.get_logger(__name__)

DEFAULT_ENDPOINT = "https://gitea.com/api/v1"
PAGE_SIZE = 50
MAX_BODY_LENGTH = 1_000_000

# Gitea commit status -> aggregate branch status
STATUS_FROM_GITEA = {
    "success": BranchStatus.GREEN,
    "pending": BranchStatus.YELLOW,
    "warning": BranchStatus.YELLOW,
    "failure": BranchStatus.RED,
    "error": BranchStatus.RED,
}

STATUS_TO_GITEA = {
    BranchStatus.GREEN: "success",
    BranchStatus.YELLOW: "pending",
    BranchStatus.RED: "failure",
}


def normalize_endpoint(endpoint: str) -> str:
    """Return the API base for a Gitea server URL (``.../api/v1``)."""
    endpoint = endpoint.rstrip("/")
    if not endpoint.endswith("/api/v1"):
        endpoint = f"{endpoint}/api/v1"
    return endpoint


def topic_heading(topic: str) -> str:
    return f"### {topic}\n\n"


class GiteaPlatform(Platform):
    """Gitea implementation using direct REST API calls.

    Issues, pull requests, comments and commit statuses are stored by the
    Gitea server, so every upsert first reads the current state and only
    writes what is missing or different.
    """

    platform_id = PlatformId.GITEA

    def __init__(self) -> None:
        self.endpoint = DEFAULT_ENDPOINT
        self.git_author: str | None = None
        self._pool: HTTPConnectionPool | None = None

    # -- HTTP plumbing ------------------------------------------------------

    def _require_pool(self) -> HTTPConnectionPool:
        if self._pool is None:
            raise ConfigurationError("Gitea platform is not initialized; call init_platform first")
        return self._pool

    @async_retry(max_attempts=3, backoff_factor=2.0)
    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        pool = self._require_pool()
        return await getattr(pool, method)(path, **kwargs)

    async def _request(
        self,
        method: str,
        path: str,
        allowed: tuple[int, ...] = (),
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request and map failures onto the platform error types.

        Args:
            method: Pool method name ("get", "post", "put", "patch", "delete")
            path: API path relative to the endpoint
            allowed: Error status codes the caller handles itself

        Raises:
            ExternalServiceError: On transport failure or an unexpected status
        """
        try:
            response = await self._send(method, path, **kwargs)
        except httpx.TransportError as e:
            raise ExternalServiceError(f"Gitea request failed: {method.upper()} {path}: {e}") from e

        if response.status_code >= 400 and response.status_code not in allowed:
            log.error("gitea_request_failed", method=method, path=path, status=response.status_code)
            raise ExternalServiceError(
                f"Gitea API error: {method.upper()} {path}",
                status_code=response.status_code,
            )
        return response

    async def _paginate(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        allowed: tuple[int, ...] = (),
    ) -> list[dict[str, Any]]:
        """Collect every page of a list endpoint.

        A status listed in ``allowed`` ends the listing with what was
        collected so far (nothing, when it is the first page).
        """
        items: list[dict[str, Any]] = []
        page = 1
        while True:
            query = {**(params or {}), "page": page, "limit": PAGE_SIZE}
            response = await self._request("get", path, allowed=allowed, params=query)
            if response.status_code in allowed:
                return items
            batch = response.json()
            items.extend(batch)
            if len(batch) < PAGE_SIZE:
                return items
            page += 1

    # -- Initialization -----------------------------------------------------

    async def init_platform(self, params: PlatformParams) -> PlatformResult:
        if not params.token:
            raise ConfigurationError("A token must be configured to use Gitea")

        if self._pool is not None:
            await self._pool.close()

        self.endpoint = normalize_endpoint(params.endpoint or DEFAULT_ENDPOINT)
        self._pool = HTTPConnectionPool(base_url=self.endpoint, token=params.token.strip())

        response = await self._request("get", "/user", allowed=(401, 403))
        if response.status_code in (401, 403):
            raise ConfigurationError(f"Gitea rejected the configured token (HTTP {response.status_code})")

        user = response.json()
        if params.git_author:
            self.git_author = params.git_author
        else:
            author = GitAuthor(name=user.get("full_name") or user["login"], email=user.get("email", ""))
            self.git_author = str(author)

        log.info("gitea_connected", endpoint=self.endpoint, user=user["login"])
        return PlatformResult(endpoint=self.endpoint, git_author=self.git_author)

    async def init_repo(self, params: RepoParams) -> RepoResult:
        log.debug("init_repo", repository=params.repository)
        try:
            response = await self._request("get", f"/repos/{params.repository}", allowed=(404,))
        except ExternalServiceError as e:
            raise RepoNotFoundError(f"Cannot inspect repository: {e.message}", repository=params.repository) from e

        if response.status_code == 404:
            raise RepoNotFoundError("Repository not found", repository=params.repository)

        repo = response.json()
        if repo.get("archived"):
            raise RepoNotFoundError("Repository is archived", repository=params.repository)
        if repo.get("empty"):
            raise RepoNotFoundError("Repository is empty", repository=params.repository)

        session = Session(
            repository=params.repository,
            default_branch=repo["default_branch"],
            endpoint=params.endpoint or self.endpoint,
            is_fork=bool(repo.get("fork")),
        )
        return RepoResult(default_branch=session.default_branch, is_fork=session.is_fork, session=session)

    async def get_repos(self) -> list[str]:
        log.debug("autodiscovering_gitea_repositories", endpoint=self.endpoint)
        repos = await self._paginate("/user/repos")
        return sorted(repo["full_name"] for repo in repos if not repo.get("archived"))

    # -- Issues -------------------------------------------------------------

    async def get_issue_list(self, session: Session) -> list[Issue]:
        data = await self._paginate(
            f"/repos/{session.repository}/issues",
            params={"state": "all", "type": "issues"},
        )
        return [self._parse_issue(item) for item in data]

    async def find_issue(self, session: Session, title: str) -> Issue | None:
        for issue in await self.get_issue_list(session):
            if issue.state == "open" and issue.title == title:
                return issue
        return None

    async def ensure_issue(self, session: Session, config: EnsureIssueConfig) -> str | None:
        log.debug("ensure_issue", title=config.title)
        issues = await self.get_issue_list(session)
        body = self.massage_markdown(config.body)

        candidates = [issue for issue in issues if issue.title == config.title]
        if not candidates and config.reuse_title:
            candidates = [issue for issue in issues if issue.title == config.reuse_title]

        issues_path = f"/repos/{session.repository}/issues"

        if not candidates:
            data: dict[str, Any] = {"title": config.title, "body": body}
            if config.labels:
                data["labels"] = await self._get_or_create_label_ids(session, config.labels)
            await self._request("post", issues_path, json=data)
            log.info("issue_created", title=config.title)
            return "created"

        open_issues = [issue for issue in candidates if issue.state == "open"]

        if config.once and not open_issues:
            log.debug("issue_once_closed", title=config.title)
            return None
        if not open_issues and not config.should_reopen:
            log.debug("issue_closed_not_reopening", title=config.title)
            return None

        target = open_issues[0] if open_issues else candidates[0]
        for duplicate in open_issues[1:]:
            log.info("closing_duplicate_issue", number=duplicate.number)
            await self._request("patch", f"{issues_path}/{duplicate.number}", json={"state": "closed"})

        await self._request(
            "patch",
            f"{issues_path}/{target.number}",
            json={"title": config.title, "body": body, "state": "open"},
        )
        if config.labels is not None:
            label_ids = await self._get_or_create_label_ids(session, config.labels)
            await self._request("put", f"{issues_path}/{target.number}/labels", json={"labels": label_ids})

        log.info("issue_updated", number=target.number, title=config.title)
        return "updated"

    async def ensure_issue_closing(self, session: Session, title: str) -> None:
        for issue in await self.get_issue_list(session):
            if issue.state == "open" and issue.title == title:
                log.info("closing_issue", number=issue.number)
                await self._request(
                    "patch",
                    f"/repos/{session.repository}/issues/{issue.number}",
                    json={"state": "closed"},
                )

    # -- Pull requests ------------------------------------------------------

    async def get_pr_list(self, session: Session) -> list[Pr]:
        data = await self._paginate(f"/repos/{session.repository}/pulls", params={"state": "all"})
        return [self._parse_pull_request(item) for item in data]

    async def find_pr(self, session: Session, config: FindPrConfig) -> Pr | None:
        log.debug("find_pr", branch=config.branch_name, title=config.pr_title, state=str(config.state))
        for pr in await self.get_pr_list(session):
            if pr.source_branch != config.branch_name:
                continue
            if config.pr_title is not None and pr.title != config.pr_title:
                continue
            if config.state.matches(pr.state):
                return pr
        return None

    async def get_pr(self, session: Session, number: int) -> Pr | None:
        response = await self._request("get", f"/repos/{session.repository}/pulls/{number}", allowed=(404,))
        if response.status_code == 404:
            return None
        return self._parse_pull_request(response.json())

    async def get_branch_pr(self, session: Session, branch_name: str) -> Pr | None:
        return await self.find_pr(session, FindPrConfig(branch_name=branch_name, state=PrState.OPEN))

    async def create_pr(self, session: Session, config: CreatePrConfig) -> Pr:
        log.info("create_pr", source_branch=config.source_branch, target_branch=config.target_branch)
        pulls_path = f"/repos/{session.repository}/pulls"
        title = f"WIP: {config.pr_title}" if config.draft_pr else config.pr_title
        body = self.massage_markdown(config.pr_body)

        existing = await self.get_branch_pr(session, config.source_branch)
        if existing is not None:
            log.info("pull_request_exists", number=existing.number, source_branch=config.source_branch)
            response = await self._request(
                "patch",
                f"{pulls_path}/{existing.number}",
                json={"title": title, "body": body},
            )
            return self._parse_pull_request(response.json())

        data: dict[str, Any] = {
            "head": config.source_branch,
            "base": config.target_branch,
            "title": title,
            "body": body,
        }
        if config.labels:
            data["labels"] = await self._get_or_create_label_ids(session, config.labels)

        response = await self._request("post", pulls_path, json=data, allowed=(409,))
        if response.status_code == 409:
            # Created concurrently by an earlier attempt
            existing = await self.get_branch_pr(session, config.source_branch)
            if existing is None:
                raise ExternalServiceError("Gitea reported a conflicting pull request", status_code=409)
            return existing

        return self._parse_pull_request(response.json())

    async def update_pr(self, session: Session, config: UpdatePrConfig) -> None:
        log.debug("update_pr", number=config.number)
        data: dict[str, Any] = {"title": config.pr_title}
        if config.pr_body is not None:
            data["body"] = self.massage_markdown(config.pr_body)
        if config.state in (PrState.OPEN, PrState.CLOSED):
            data["state"] = config.state.value

        await self._request("patch", f"/repos/{session.repository}/pulls/{config.number}", json=data)

    async def merge_pr(self, session: Session, config: MergePrConfig) -> bool:
        response = await self._request(
            "post",
            f"/repos/{session.repository}/pulls/{config.number}/merge",
            json={"Do": "merge"},
            allowed=(405, 409),
        )
        if response.status_code in (405, 409):
            log.info("merge_refused", number=config.number, status=response.status_code)
            return False

        log.info("pr_merged", number=config.number)
        return True

    async def delete_label(self, session: Session, number: int, label: str) -> None:
        labels = await self._paginate(f"/repos/{session.repository}/labels")
        label_map = {item["name"]: item["id"] for item in labels}
        if label not in label_map:
            log.debug("label_not_found", label=label)
            return

        await self._request(
            "delete",
            f"/repos/{session.repository}/issues/{number}/labels/{label_map[label]}",
            allowed=(404,),
        )

    async def _get_or_create_label_ids(self, session: Session, label_names: list[str]) -> list[int]:
        """Resolve label names to IDs, creating missing labels.

        Gitea requires label IDs (not names) when creating or updating
        issues and pull requests. Order of ``label_names`` is preserved.
        """
        labels_path = f"/repos/{session.repository}/labels"
        label_map = {label["name"]: label["id"] for label in await self._paginate(labels_path)}

        label_ids = []
        for name in label_names:
            if name not in label_map:
                log.info("creating_label", name=name)
                created = await self._request("post", labels_path, json={"name": name, "color": "#ededed"})
                label_map[name] = created.json()["id"]
            label_ids.append(label_map[name])

        return label_ids

    # -- Branch status ------------------------------------------------------

    async def _get_check_statuses(self, session: Session, branch_name: str) -> dict[str, BranchStatus]:
        """Latest status per check context for the head commit of a branch."""
        statuses = await self._paginate(
            f"/repos/{session.repository}/commits/{branch_name}/statuses",
            allowed=(404,),
        )

        latest: dict[str, dict[str, Any]] = {}
        for status in statuses:
            context = status["context"]
            if context not in latest or status["id"] > latest[context]["id"]:
                latest[context] = status

        return {
            context: STATUS_FROM_GITEA.get(status["status"], BranchStatus.YELLOW)
            for context, status in latest.items()
        }

    async def get_branch_status(self, session: Session, branch_name: str) -> BranchStatus:
        checks = await self._get_check_statuses(session, branch_name)
        status = BranchStatus.worst(list(checks.values()))
        log.debug("branch_status", branch=branch_name, status=str(status))
        return status

    async def get_branch_status_check(
        self,
        session: Session,
        branch_name: str,
        context: str,
    ) -> BranchStatus | None:
        checks = await self._get_check_statuses(session, branch_name)
        return checks.get(context)

    async def set_branch_status(self, session: Session, config: BranchStatusConfig) -> None:
        existing = await self.get_branch_status_check(session, config.branch_name, config.context)
        if existing == config.state:
            log.debug("branch_status_unchanged", branch=config.branch_name, context=config.context)
            return

        response = await self._request(
            "get",
            f"/repos/{session.repository}/branches/{config.branch_name}",
            allowed=(404,),
        )
        if response.status_code == 404:
            raise PlatformError(f"Branch not found: {config.branch_name}")
        sha = response.json()["commit"]["id"]

        data: dict[str, Any] = {
            "state": STATUS_TO_GITEA[config.state],
            "context": config.context,
            "description": config.description,
        }
        if config.url:
            data["target_url"] = config.url

        await self._request("post", f"/repos/{session.repository}/statuses/{sha}", json=data)
        log.info("branch_status_set", branch=config.branch_name, context=config.context, state=str(config.state))

    # -- Comments -----------------------------------------------------------

    async def _get_comments(self, session: Session, number: int) -> list[Comment]:
        response = await self._request("get", f"/repos/{session.repository}/issues/{number}/comments")
        return [self._parse_comment(item) for item in response.json()]

    async def ensure_comment(self, session: Session, config: EnsureCommentConfig) -> bool:
        content = self.massage_markdown(config.content)
        body = f"{topic_heading(config.topic)}{content}" if config.topic else content

        existing: Comment | None = None
        for comment in await self._get_comments(session, config.number):
            if config.topic and comment.body.startswith(topic_heading(config.topic)):
                existing = comment
                break
            if not config.topic and comment.body == body:
                existing = comment
                break

        if existing is None:
            await self._request(
                "post",
                f"/repos/{session.repository}/issues/{config.number}/comments",
                json={"body": body},
            )
            log.info("comment_added", number=config.number, topic=config.topic)
        elif existing.body != body:
            await self._request(
                "patch",
                f"/repos/{session.repository}/issues/comments/{existing.id}",
                json={"body": body},
            )
            log.info("comment_updated", number=config.number, topic=config.topic)
        else:
            log.debug("comment_unchanged", number=config.number, topic=config.topic)

        return True

    async def ensure_comment_removal(self, session: Session, config: EnsureCommentRemovalConfig) -> None:
        for comment in await self._get_comments(session, config.number):
            by_topic = config.topic and comment.body.startswith(topic_heading(config.topic))
            by_content = config.content is not None and comment.body.strip() == config.content.strip()
            if by_topic or by_content:
                await self._request(
                    "delete",
                    f"/repos/{session.repository}/issues/comments/{comment.id}",
                    allowed=(404,),
                )
                log.info("comment_removed", number=config.number, comment_id=comment.id)

    # -- People -------------------------------------------------------------

    async def add_assignees(self, session: Session, number: int, assignees: list[str]) -> None:
        issue_path = f"/repos/{session.repository}/issues/{number}"
        response = await self._request("get", issue_path)
        current = [user["login"] for user in response.json().get("assignees") or []]
        merged = current + [name for name in assignees if name not in current]

        await self._request("patch", issue_path, json={"assignees": merged})

    async def add_reviewers(self, session: Session, number: int, reviewers: list[str]) -> None:
        await self._request(
            "post",
            f"/repos/{session.repository}/pulls/{number}/requested_reviewers",
            json={"reviewers": reviewers},
        )

    async def filter_unavailable_users(self, session: Session, users: list[str]) -> list[str]:
        assignees = await self._paginate(f"/repos/{session.repository}/assignees")
        assignable = {user["login"] for user in assignees}
        return [user for user in users if user in assignable]

    # -- File access --------------------------------------------------------

    async def get_raw_file(
        self,
        session: Session,
        file_name: str,
        repository: str | None = None,
    ) -> str:
        repo = repository or session.repository
        response = await self._request("get", f"/repos/{repo}/contents/{file_name}", allowed=(404,))
        if response.status_code == 404:
            raise PlatformFileNotFoundError(file_name, repository=repo)

        data = response.json()
        if not isinstance(data, dict) or data.get("type") != "file" or data.get("content") is None:
            raise PlatformFileNotFoundError(file_name, repository=repo)

        try:
            return base64.b64decode(data["content"]).decode("utf-8")
        except (ValueError, UnicodeDecodeError) as e:
            raise ParseError(f"Cannot decode file content: {e}", file_name=file_name) from e

    # -- Misc ---------------------------------------------------------------

    def massage_markdown(self, text: str) -> str:
        """Point relative PR links at Gitea's ``pulls`` route and cap the length."""
        text = re.sub(r"\]\(\.\./pull/", "](../../pulls/", text)
        return text[:MAX_BODY_LENGTH]

    async def get_repo_force_rebase(self, session: Session) -> bool:
        response = await self._request("get", f"/repos/{session.repository}")
        repo = response.json()
        return bool(repo.get("allow_rebase")) and not (
            repo.get("allow_merge_commits") or repo.get("allow_squash_merge")
        )

    async def get_vulnerability_alerts(self, session: Session) -> list[VulnerabilityAlert]:
        return []

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    # -- Parsing ------------------------------------------------------------

    def _parse_issue(self, data: dict[str, Any]) -> Issue:
        return Issue(
            number=data["number"],
            title=data["title"],
            body=data.get("body") or "",
            state=data["state"],
            labels={label["name"] for label in data.get("labels") or []},
        )

    def _parse_comment(self, data: dict[str, Any]) -> Comment:
        return Comment(id=data["id"], body=data.get("body") or "")

    def _parse_pull_request(self, data: dict[str, Any]) -> Pr:
        """Convert a Gitea pull request payload.

        Gitea reports merged PRs as ``state == "closed"`` with ``merged``
        set, so the merged flag wins over the state field.
        """
        state = PrState.MERGED if data.get("merged") else PrState(data["state"])
        return Pr(
            number=data["number"],
            source_branch=data["head"]["ref"],
            target_branch=data["base"]["ref"],
            title=data["title"],
            body=data.get("body") or "",
            state=state,
            labels={label["name"] for label in data.get("labels") or []},
        )
