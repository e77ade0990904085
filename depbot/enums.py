"""Enumerations shared by all platform backends."""

from enum import Enum


class PlatformId(str, Enum):
    """Platform backends supported by depbot."""

    MOCK = "mock"
    GITEA = "gitea"

    def __str__(self) -> str:
        return self.value


class PrState(str, Enum):
    """Pull request states.

    ``ALL`` and ``NOT_OPEN`` are filters for ``find_pr``, never the state of
    an actual pull request.
    """

    OPEN = "open"
    CLOSED = "closed"
    MERGED = "merged"
    ALL = "all"
    NOT_OPEN = "!open"

    def __str__(self) -> str:
        return self.value

    def matches(self, state: "PrState") -> bool:
        """Check whether a concrete PR state passes this filter."""
        if self == PrState.ALL:
            return True
        if self == PrState.NOT_OPEN:
            return state != PrState.OPEN
        return self == state


class BranchStatus(str, Enum):
    """Aggregate CI status of a branch or of one named check."""

    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"

    def __str__(self) -> str:
        return self.value

    @property
    def severity(self) -> int:
        """Ordering used for worst-of aggregation (red > yellow > green)."""
        return _SEVERITY[self]

    @classmethod
    def worst(cls, statuses: "list[BranchStatus]") -> "BranchStatus":
        """Return the worst status, or green when there are none."""
        if not statuses:
            return cls.GREEN
        return max(statuses, key=lambda status: status.severity)


_SEVERITY = {
    BranchStatus.GREEN: 0,
    BranchStatus.YELLOW: 1,
    BranchStatus.RED: 2,
}
