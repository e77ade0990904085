"""Tests for depbot.enums module."""

import pytest

from depbot.enums import BranchStatus, PlatformId, PrState


class TestPrState:
    @pytest.mark.parametrize(
        "filter_state,state,expected",
        [
            (PrState.ALL, PrState.MERGED, True),
            (PrState.OPEN, PrState.OPEN, True),
            (PrState.OPEN, PrState.CLOSED, False),
            (PrState.NOT_OPEN, PrState.CLOSED, True),
            (PrState.NOT_OPEN, PrState.MERGED, True),
            (PrState.NOT_OPEN, PrState.OPEN, False),
            (PrState.MERGED, PrState.CLOSED, False),
        ],
    )
    def test_matches(self, filter_state, state, expected):
        assert filter_state.matches(state) is expected

    def test_str(self):
        assert str(PrState.NOT_OPEN) == "!open"
        assert PrState("merged") is PrState.MERGED


class TestBranchStatus:
    def test_worst_of_empty_is_green(self):
        assert BranchStatus.worst([]) == BranchStatus.GREEN

    def test_worst(self):
        assert BranchStatus.worst([BranchStatus.GREEN, BranchStatus.YELLOW]) == BranchStatus.YELLOW
        assert BranchStatus.worst([BranchStatus.RED, BranchStatus.YELLOW]) == BranchStatus.RED

    def test_severity_order(self):
        assert BranchStatus.GREEN.severity < BranchStatus.YELLOW.severity < BranchStatus.RED.severity


def test_platform_id_values():
    assert [str(p) for p in PlatformId] == ["mock", "gitea"]
