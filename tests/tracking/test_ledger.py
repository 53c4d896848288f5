# tests/tracking/test_ledger.py
"""
Tests for SessionLedger: logging sessions, ordering, date validation,
queries over date ranges and note editing.
"""

from datetime import date, datetime, timedelta

import pytest

from successcore.exceptions import NotFound, SuccessError, ValidationError, WriteFailure
from successcore.tracking import DateRange, SessionSequence

TODAY = date(2024, 1, 10)


@pytest.fixture
def goal_id(tracker):
    return tracker.goals.create("Exercise", target=300, quantity_name="km")


class TestAdd:
    """Tests for SessionLedger.add."""

    def test_add_and_get(self, tracker, goal_id):
        session_id = tracker.ledger.add(goal_id, date(2024, 1, 5), 30, "easy run", quantity=5)
        session = tracker.ledger.get(session_id)
        assert session.goal_id == goal_id
        assert session.date == date(2024, 1, 5)
        assert session.value == 30
        assert session.note == "easy run"
        assert session.quantity == 5

    def test_add_persists(self, tracker, goal_id, reopen):
        session_id = tracker.ledger.add(goal_id, date(2024, 1, 5), 30)
        assert reopen().ledger.get(session_id) == tracker.ledger.get(session_id)

    def test_today_is_allowed(self, tracker, goal_id):
        tracker.ledger.add(goal_id, TODAY, 1)

    def test_zero_value_allowed(self, tracker, goal_id):
        session_id = tracker.ledger.add(goal_id, TODAY, 0)
        assert tracker.ledger.get(session_id).value == 0

    def test_future_date_rejected(self, tracker, goal_id, reopen):
        """Test a session dated tomorrow is rejected and nothing is persisted."""
        with pytest.raises(ValidationError) as exc_info:
            tracker.ledger.add(goal_id, TODAY + timedelta(days=1), 10)
        assert exc_info.value.field == "date"
        assert len(tracker.ledger.sessions_for(goal_id)) == 0
        assert len(reopen().ledger.sessions_for(goal_id)) == 0

    def test_future_tolerance(self, reopen):
        tracker = reopen(future_tolerance_days=2)
        goal_id = tracker.goals.create("Plan ahead")
        tracker.ledger.add(goal_id, TODAY + timedelta(days=2), 1)
        with pytest.raises(ValidationError):
            tracker.ledger.add(goal_id, TODAY + timedelta(days=3), 1)

    def test_negative_tolerance_rejected(self, reopen):
        with pytest.raises(ValidationError):
            reopen(future_tolerance_days=-1)

    @pytest.mark.parametrize("value", [-1, -0.5, float("nan"), "30", None, True])
    def test_invalid_value(self, tracker, goal_id, value):
        with pytest.raises(ValidationError) as exc_info:
            tracker.ledger.add(goal_id, TODAY, value)
        assert exc_info.value.field == "value"

    def test_negative_quantity(self, tracker, goal_id):
        with pytest.raises(ValidationError) as exc_info:
            tracker.ledger.add(goal_id, TODAY, 10, quantity=-1)
        assert exc_info.value.field == "quantity"

    def test_datetime_is_not_a_day(self, tracker, goal_id):
        with pytest.raises(ValidationError):
            tracker.ledger.add(goal_id, datetime(2024, 1, 5, 10, 0), 10)

    def test_unknown_goal(self, tracker):
        with pytest.raises(NotFound):
            tracker.ledger.add("goal_missing", TODAY, 1)

    def test_archived_goal_rejected(self, tracker, goal_id):
        tracker.goals.archive(goal_id)
        with pytest.raises(NotFound, match="No active goal"):
            tracker.ledger.add(goal_id, TODAY, 1)

    def test_tombstoned_goal_rejected(self, tracker, goal_id):
        tracker.ledger.add(goal_id, TODAY, 1)
        tracker.goals.delete(goal_id)
        with pytest.raises(NotFound):
            tracker.ledger.add(goal_id, TODAY, 1)
        assert tracker.ledger.count_for(goal_id) == 1

    def test_session_ids_unique(self, tracker, goal_id):
        ids = {tracker.ledger.add(goal_id, date(2024, 1, 1 + n % 9), n) for n in range(30)}
        assert len(ids) == 30

    def test_colliding_session_ids_retried(self, reopen):
        candidates = iter(["sess_a", "sess_a", "sess_b"])
        tracker = reopen(session_id_factory=lambda: next(candidates))
        goal_id = tracker.goals.create("Exercise")
        assert tracker.ledger.add(goal_id, TODAY, 1) == "sess_a"
        assert tracker.ledger.add(goal_id, TODAY, 1) == "sess_b"

    def test_session_id_space_exhausted(self, reopen):
        tracker = reopen(session_id_factory=lambda: "sess_a")
        goal_id = tracker.goals.create("Exercise")
        tracker.ledger.add(goal_id, TODAY, 1)
        with pytest.raises(SuccessError, match="unique session id"):
            tracker.ledger.add(goal_id, TODAY, 1)

    def test_write_failure_keeps_ledger(self, tracker, goal_id, monkeypatch, reopen):
        """Test a failed ledger write leaves memory and disk unchanged."""
        tracker.ledger.add(goal_id, date(2024, 1, 1), 10)
        before = list(tracker.ledger.sessions_for(goal_id))

        def boom(*args, **kwargs):
            raise WriteFailure(tracker.store.ledger_path(goal_id), "disk full")

        monkeypatch.setattr(tracker.store, "save_ledger", boom)
        with pytest.raises(WriteFailure):
            tracker.ledger.add(goal_id, date(2024, 1, 2), 20)

        assert list(tracker.ledger.sessions_for(goal_id)) == before
        monkeypatch.undo()
        assert list(reopen().ledger.sessions_for(goal_id)) == before


class TestOrdering:
    """Tests for chronological ordering of a ledger."""

    def test_sessions_ordered_by_date(self, tracker, goal_id):
        """Test back-dated sessions are slotted in by date, not insertion order."""
        late = tracker.ledger.add(goal_id, date(2024, 1, 8), 1)
        early = tracker.ledger.add(goal_id, date(2024, 1, 2), 1)
        middle = tracker.ledger.add(goal_id, date(2024, 1, 5), 1)
        assert [s.id for s in tracker.ledger.sessions_for(goal_id)] == [early, middle, late]

    def test_same_day_ordered_by_creation(self, tracker, goal_id):
        first = tracker.ledger.add(goal_id, date(2024, 1, 5), 1)
        second = tracker.ledger.add(goal_id, date(2024, 1, 5), 1)
        assert [s.id for s in tracker.ledger.sessions_for(goal_id)] == [first, second]

    def test_order_survives_reload(self, tracker, goal_id, reopen):
        tracker.ledger.add(goal_id, date(2024, 1, 8), 1)
        tracker.ledger.add(goal_id, date(2024, 1, 2), 1)
        expected = [s.id for s in tracker.ledger.sessions_for(goal_id)]
        assert [s.id for s in reopen().ledger.sessions_for(goal_id)] == expected

    def test_last_session(self, tracker, goal_id):
        assert tracker.ledger.last_session(goal_id) is None
        tracker.ledger.add(goal_id, date(2024, 1, 8), 1)
        tracker.ledger.add(goal_id, date(2024, 1, 2), 1)
        assert tracker.ledger.last_session(goal_id).date == date(2024, 1, 8)


class TestQueries:
    """Tests for ranged and cross-goal queries."""

    def test_date_range_inclusive(self, tracker, goal_id):
        for day in range(1, 8):
            tracker.ledger.add(goal_id, date(2024, 1, day), day)
        selected = tracker.ledger.sessions_for(goal_id, DateRange(date(2024, 1, 3), date(2024, 1, 5)))
        assert [s.value for s in selected] == [3, 4, 5]

    def test_open_ended_ranges(self, tracker, goal_id):
        for day in range(1, 5):
            tracker.ledger.add(goal_id, date(2024, 1, day), day)
        assert len(tracker.ledger.sessions_for(goal_id, DateRange(start=date(2024, 1, 3)))) == 2
        assert len(tracker.ledger.sessions_for(goal_id, DateRange(end=date(2024, 1, 1)))) == 1

    def test_inverted_range_rejected(self):
        with pytest.raises(ValidationError):
            DateRange(date(2024, 1, 5), date(2024, 1, 1))

    def test_sequence_is_restartable(self, tracker, goal_id):
        """Test iterating a result twice yields the same sessions."""
        tracker.ledger.add(goal_id, date(2024, 1, 1), 1)
        tracker.ledger.add(goal_id, date(2024, 1, 2), 2)
        sequence = tracker.ledger.sessions_for(goal_id)
        assert isinstance(sequence, SessionSequence)
        assert list(sequence) == list(sequence)
        assert sequence[-1].value == 2

    def test_sequence_is_a_snapshot(self, tracker, goal_id):
        tracker.ledger.add(goal_id, date(2024, 1, 1), 1)
        sequence = tracker.ledger.sessions_for(goal_id)
        tracker.ledger.add(goal_id, date(2024, 1, 2), 2)
        assert len(sequence) == 1

    def test_unknown_goal(self, tracker):
        with pytest.raises(NotFound):
            tracker.ledger.sessions_for("goal_missing")

    def test_goal_without_sessions(self, tracker, goal_id):
        assert list(tracker.ledger.sessions_for(goal_id)) == []
        assert tracker.ledger.count_for(goal_id) == 0

    def test_sessions_between_spans_goals(self, tracker, goal_id):
        other = tracker.goals.create("Read")
        a = tracker.ledger.add(goal_id, date(2024, 1, 3), 1)
        b = tracker.ledger.add(other, date(2024, 1, 2), 1)
        tracker.ledger.add(other, date(2024, 1, 6), 1)
        assert [s.id for s in tracker.ledger.sessions_between(date(2024, 1, 1), date(2024, 1, 4))] == [b, a]

    def test_day_sessions(self, tracker, goal_id):
        other = tracker.goals.create("Read")
        tracker.ledger.add(goal_id, date(2024, 1, 3), 1)
        tracker.ledger.add(other, date(2024, 1, 3), 2)
        tracker.ledger.add(other, date(2024, 1, 4), 3)
        assert sorted(s.value for s in tracker.ledger.day_sessions(date(2024, 1, 3))) == [1, 2]


class TestEditNote:
    """Tests for SessionLedger.edit_note."""

    def test_edit_note(self, tracker, goal_id, reopen):
        session_id = tracker.ledger.add(goal_id, date(2024, 1, 3), 10, "first")
        updated = tracker.ledger.edit_note(session_id, "second")
        assert updated.note == "second"
        assert updated.value == 10 and updated.date == date(2024, 1, 3)
        assert reopen().ledger.get(session_id).note == "second"

    def test_clear_note(self, tracker, goal_id):
        session_id = tracker.ledger.add(goal_id, date(2024, 1, 3), 10, "first")
        assert tracker.ledger.edit_note(session_id, None).note is None

    def test_edit_note_on_archived_goal(self, tracker, goal_id):
        session_id = tracker.ledger.add(goal_id, date(2024, 1, 3), 10)
        tracker.goals.archive(goal_id)
        assert tracker.ledger.edit_note(session_id, "still editable").note == "still editable"

    def test_edit_unknown_session(self, tracker):
        with pytest.raises(NotFound) as exc_info:
            tracker.ledger.edit_note("sess_missing", "x")
        assert exc_info.value.kind == "session"

    def test_edit_note_keeps_order(self, tracker, goal_id):
        ids = [tracker.ledger.add(goal_id, date(2024, 1, d), 1) for d in (3, 1, 2)]
        tracker.ledger.edit_note(ids[0], "changed")
        assert [s.date.day for s in tracker.ledger.sessions_for(goal_id)] == [1, 2, 3]
