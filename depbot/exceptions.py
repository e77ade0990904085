"""Custom exception hierarchy for the depbot platform layer.

Every backend maps its own failures onto these types so that code written
against the platform abstraction never has to special-case a backend.

Exception Hierarchy:
    DepbotError (base)
    ├── ConfigurationError
    ├── PlatformError
    │   ├── RepoNotFoundError
    │   ├── DiscoveryError
    │   ├── PlatformFileNotFoundError (also a builtin FileNotFoundError)
    │   └── ParseError
    ├── ExternalServiceError
    └── PresetError

Example Usage:
    >>> from depbot.exceptions import RepoNotFoundError
    >>> try:
    ...     result = await platform.init_repo(RepoParams(repository="org/app"))
    ... except RepoNotFoundError as e:
    ...     log.error("repo_skipped", repository=e.repository)
"""


class DepbotError(Exception):
    """Base exception for all depbot errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        """Initialize exception.

        Args:
            message: Error message
        """
        self.message = message
        super().__init__(message)


class ConfigurationError(DepbotError):
    """Configuration-related errors.

    Raised when settings files are invalid or missing, or when a backend
    is initialized without the connection parameters it requires.

    Examples:
        - Configuration file not found
        - Invalid YAML syntax
        - Missing API token for a network backend
        - Unknown platform or preset source
    """

    pass


class PlatformError(DepbotError):
    """Base class for errors raised by a platform backend."""

    pass


class RepoNotFoundError(PlatformError):
    """The repository cannot be located or inspected.

    Session establishment failures are fatal to the calling operation; a
    missing repository is never treated as "no repository".

    Attributes:
        repository: Repository identifier that could not be opened
    """

    def __init__(self, message: str, repository: str | None = None) -> None:
        self.repository = repository

        full_message = message
        if repository:
            full_message = f"{message} (repository: {repository})"

        super().__init__(full_message)
        self.message = message


class DiscoveryError(PlatformError):
    """Repository enumeration failed."""

    pass


class PlatformFileNotFoundError(PlatformError, FileNotFoundError):
    """A file requested through the platform does not exist.

    Also a builtin ``FileNotFoundError`` so callers can catch either.

    Attributes:
        file_name: Path of the file relative to the repository root
        repository: Repository the file was looked up in
    """

    def __init__(self, file_name: str, repository: str | None = None) -> None:
        self.file_name = file_name
        self.repository = repository

        message = f"File not found: {file_name}"
        if repository:
            message = f"{message} (repository: {repository})"

        PlatformError.__init__(self, message)


class ParseError(PlatformError):
    """File content is malformed for the selected parser.

    Attributes:
        file_name: Name of the file that failed to parse
    """

    def __init__(self, message: str, file_name: str | None = None) -> None:
        self.file_name = file_name

        full_message = message
        if file_name:
            full_message = f"{message} (file: {file_name})"

        super().__init__(full_message)
        self.message = message


class ExternalServiceError(DepbotError):
    """External service communication errors.

    Raised when a network backend cannot reach its provider or the
    provider answers with an unexpected error. A refused merge is not an
    error; see ``Platform.merge_pr``.

    Attributes:
        status_code: HTTP status code (if applicable)
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code

        full_message = message
        if status_code:
            full_message = f"{message} (HTTP {status_code})"

        super().__init__(full_message)
        self.message = message


class PresetError(DepbotError):
    """A preset reference cannot be resolved for a reason other than absence.

    Absent presets are reported as ``None``; this error is reserved for
    malformed preset names and presets that are not configuration mappings.
    """

    pass
