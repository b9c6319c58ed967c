"""Tests for the session write service."""

from datetime import datetime

import pytest
from sqlalchemy import select

from app.db.models import PlanSession, Workout
from app.sessions.errors import SessionNotFoundError, SessionStateError
from app.sessions.models import SessionKind, SessionStatus
from app.sessions.read_service import get_session_by_id, list_sessions
from app.sessions.write_service import (
    complete_planned_session,
    create_completed_session,
    create_planned_session,
    create_planned_sessions,
    delete_session,
    delete_sessions,
    update_session,
)


class TestCreate:
    """Test session creation and the numbering that follows it."""

    def test_completed_session_gets_number_and_derived_pace(self, db_session, user_id):
        record = create_completed_session(
            db_session,
            user_id,
            {"date": datetime(2024, 1, 3), "session_type": "Easy", "avg_pace": "5:30", "duration_seconds": 1800},
        )

        assert record.kind == SessionKind.REALIZED
        assert record.session_number == 1
        assert record.week == 1
        workout = db_session.get(Workout, record.id)
        assert workout.avg_pace_seconds == 330

    def test_completed_session_requires_date(self, db_session, user_id):
        with pytest.raises(SessionStateError):
            create_completed_session(db_session, user_id, {"session_type": "Easy"})

    def test_numbering_fields_in_values_are_ignored(self, db_session, user_id):
        record = create_completed_session(
            db_session,
            user_id,
            {"date": datetime(2024, 1, 3), "session_number": 99, "week": 42},
        )

        assert record.session_number == 1
        assert record.week == 1

    def test_backdated_session_renumbers_later_ones(self, db_session, user_id):
        later = create_completed_session(db_session, user_id, {"date": datetime(2024, 1, 10)})
        earlier = create_completed_session(db_session, user_id, {"date": datetime(2024, 1, 2)})

        assert earlier.session_number == 1
        assert get_session_by_id(db_session, user_id, later.id).session_number == 2

    def test_planned_session_derives_sort_values(self, db_session, user_id):
        record = create_planned_session(
            db_session,
            user_id,
            {"target_pace": "4:50", "target_heart_rate_bpm": "150-160", "session_type": "Tempo"},
        )

        assert record.status == SessionStatus.PLANNED
        assert record.session_number == 1
        assert record.week is None
        plan = db_session.get(PlanSession, record.id)
        assert plan.target_pace_seconds == 290
        assert plan.target_heart_rate_value == 155


class TestCreatePlannedSessions:
    """Test create_planned_sessions() batch inserts."""

    def test_batch_is_numbered_densely_after_existing_sessions(self, db_session, user_id):
        create_completed_session(db_session, user_id, {"date": datetime(2024, 1, 3)})
        create_planned_session(db_session, user_id, {"session_type": "Old plan"})

        records = create_planned_sessions(
            db_session,
            user_id,
            [
                {"session_type": "B"},
                {"session_type": "Dated", "planned_date": datetime(2024, 1, 2)},
                {"session_type": "C", "target_pace": "5:10"},
            ],
        )

        assert [r.session_type for r in records] == ["B", "Dated", "C"]
        page = list_sessions(db_session, user_id, sort="sessionNumber:asc")
        assert [(s.session_type, s.session_number) for s in page.items] == [
            ("Dated", 1),
            ("", 2),
            ("Old plan", 3),
            ("B", 4),
            ("C", 5),
        ]
        assert db_session.get(PlanSession, records[2].id).target_pace_seconds == 310

    def test_empty_batch_is_rejected(self, db_session, user_id):
        with pytest.raises(SessionStateError):
            create_planned_sessions(db_session, user_id, [])


class TestCompletePlannedSession:
    """Test complete_planned_session() lifecycle rules."""

    def test_workout_reuses_plan_id_and_targets(self, db_session, user_id):
        plan = create_planned_session(
            db_session,
            user_id,
            {"planned_date": datetime(2024, 1, 5), "session_type": "Tempo", "target_duration": 45},
        )

        record = complete_planned_session(db_session, user_id, plan.id, {"duration_seconds": 2760})

        assert record.id == plan.id
        assert record.kind == SessionKind.REALIZED
        assert record.date == datetime(2024, 1, 5)
        assert record.session_type == "Tempo"
        assert record.target_duration == 45
        assert record.plan_session_id == plan.id
        assert db_session.get(PlanSession, plan.id).status == "completed"

    def test_completed_plan_disappears_from_listing(self, db_session, user_id):
        plan = create_planned_session(db_session, user_id, {"planned_date": datetime(2024, 1, 5)})

        complete_planned_session(db_session, user_id, plan.id, {"date": datetime(2024, 1, 6)})

        page = list_sessions(db_session, user_id)
        assert [(s.id, s.kind) for s in page.items] == [(plan.id, SessionKind.REALIZED)]

    def test_plan_mirrors_workout_number(self, db_session, user_id):
        create_completed_session(db_session, user_id, {"date": datetime(2024, 1, 1)})
        plan = create_planned_session(db_session, user_id, {})

        record = complete_planned_session(db_session, user_id, plan.id, {"date": datetime(2024, 1, 2)})

        stored = db_session.get(PlanSession, plan.id)
        assert (stored.session_number, stored.week) == (record.session_number, record.week) == (2, 1)

    def test_undated_plan_without_date_is_rejected(self, db_session, user_id):
        plan = create_planned_session(db_session, user_id, {})

        with pytest.raises(SessionStateError):
            complete_planned_session(db_session, user_id, plan.id, {})

    def test_completing_twice_is_rejected(self, db_session, user_id):
        plan = create_planned_session(db_session, user_id, {"planned_date": datetime(2024, 1, 5)})
        complete_planned_session(db_session, user_id, plan.id, {})

        with pytest.raises(SessionStateError):
            complete_planned_session(db_session, user_id, plan.id, {})

    def test_unknown_plan(self, db_session, user_id):
        with pytest.raises(SessionNotFoundError):
            complete_planned_session(db_session, user_id, "missing", {"date": datetime(2024, 1, 1)})


class TestUpdateSession:
    def test_moving_a_date_renumbers(self, db_session, user_id):
        first = create_completed_session(db_session, user_id, {"date": datetime(2024, 1, 1)})
        second = create_completed_session(db_session, user_id, {"date": datetime(2024, 1, 2)})

        update_session(db_session, user_id, first.id, {"date": datetime(2024, 1, 20)})

        assert get_session_by_id(db_session, user_id, second.id).session_number == 1
        moved = get_session_by_id(db_session, user_id, first.id)
        assert (moved.session_number, moved.week) == (2, 2)

    def test_updates_plan_targets_and_derived_values(self, db_session, user_id):
        plan = create_planned_session(db_session, user_id, {"target_pace": "5:00"})

        record = update_session(db_session, user_id, plan.id, {"target_pace": "4:30", "avg_pace": "3:00"})

        assert record.target_pace == "4:30"
        assert db_session.get(PlanSession, plan.id).target_pace_seconds == 270

    def test_clearing_workout_date_is_rejected(self, db_session, user_id):
        record = create_completed_session(db_session, user_id, {"date": datetime(2024, 1, 1)})

        with pytest.raises(SessionStateError):
            update_session(db_session, user_id, record.id, {"date": None})

    def test_unknown_session(self, db_session, user_id):
        with pytest.raises(SessionNotFoundError):
            update_session(db_session, user_id, "missing", {"comments": "x"})


class TestDelete:
    def test_delete_closes_the_gap(self, db_session, user_id):
        a = create_completed_session(db_session, user_id, {"date": datetime(2024, 1, 1)})
        b = create_completed_session(db_session, user_id, {"date": datetime(2024, 1, 2)})
        c = create_completed_session(db_session, user_id, {"date": datetime(2024, 1, 3)})

        delete_session(db_session, user_id, b.id)

        assert get_session_by_id(db_session, user_id, b.id) is None
        assert get_session_by_id(db_session, user_id, a.id).session_number == 1
        assert get_session_by_id(db_session, user_id, c.id).session_number == 2

    def test_delete_completed_plan_removes_both_rows(self, db_session, user_id):
        plan = create_planned_session(db_session, user_id, {"planned_date": datetime(2024, 1, 5)})
        complete_planned_session(db_session, user_id, plan.id, {})

        delete_session(db_session, user_id, plan.id)

        assert db_session.execute(select(Workout)).scalars().all() == []
        assert db_session.execute(select(PlanSession)).scalars().all() == []

    def test_delete_unknown_session(self, db_session, user_id):
        with pytest.raises(SessionNotFoundError):
            delete_session(db_session, user_id, "missing")

    def test_bulk_delete_ignores_foreign_ids(self, db_session, user_id):
        mine = create_completed_session(db_session, user_id, {"date": datetime(2024, 1, 1)})
        plan = create_planned_session(db_session, user_id, {})
        theirs = create_completed_session(db_session, "someone-else", {"date": datetime(2024, 1, 1)})

        deleted = delete_sessions(db_session, user_id, [mine.id, plan.id, theirs.id, mine.id])

        assert deleted == 2
        assert get_session_by_id(db_session, "someone-else", theirs.id) is not None

    def test_bulk_delete_empty_list(self, db_session, user_id):
        assert delete_sessions(db_session, user_id, []) == 0
