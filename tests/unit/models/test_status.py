"""Unit tests for the Status state machine."""

import pytest

from aztoolkit.exceptions import InvariantViolation
from aztoolkit.models import Deleted, Resolved, Status, Unresolved, check_transition, resolved_or_none


class TestStatusTransitions:
    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (Status.UNKNOWN, Status.LOADING),
            (Status.UNKNOWN, Status.CREATING),
            (Status.LOADING, Status.ACTIVE),
            (Status.LOADING, Status.NOT_FOUND),
            (Status.ACTIVE, Status.UPDATING),
            (Status.ACTIVE, Status.DELETING),
            (Status.DELETING, Status.DELETED),
            (Status.DELETING, Status.ERROR),
            (Status.ERROR, Status.DELETING),
            (Status.NOT_FOUND, Status.CREATING),
        ],
    )
    def test_allowed(self, current, target):
        check_transition(current, target)

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (Status.DELETED, Status.ACTIVE),
            (Status.DELETED, Status.LOADING),
            (Status.ACTIVE, Status.DELETED),
            (Status.UNKNOWN, Status.ACTIVE),
            (Status.CREATING, Status.DELETING),
            (Status.NOT_FOUND, Status.DELETING),
        ],
    )
    def test_rejected(self, current, target):
        with pytest.raises(InvariantViolation, match="Illegal status transition"):
            check_transition(current, target)

    def test_transitional_statuses(self):
        assert {s for s in Status if s.is_transitional} == {
            Status.LOADING,
            Status.CREATING,
            Status.UPDATING,
            Status.DELETING,
        }

    def test_status_is_a_string(self):
        assert Status.NOT_FOUND == "not_found"


class TestRemoteState:
    def test_resolved_or_none(self):
        handle = object()
        assert resolved_or_none(Resolved(handle)) is handle
        assert resolved_or_none(Unresolved()) is None
        assert resolved_or_none(Deleted()) is None
