"""Tests for the pushdown session page planner."""

from datetime import datetime

from sqlalchemy import column
from sqlalchemy.dialects import postgresql, sqlite

from app.sessions.columns import LOWER
from app.sessions.models import SessionFilters, SessionKind, SessionRef, StatusFilter
from app.sessions.query_planner import count_sessions, list_session_types, plan_session_page
from app.sessions.sort_spec import parse_sort_param
from tests.factories import add_plan, add_workout


def _ids(refs: list[SessionRef]) -> list[str]:
    return [ref.id for ref in refs]


class TestPlanSessionPage:
    """Test plan_session_page() union, ordering and pagination."""

    def test_returns_both_kinds(self, db_session, user_id):
        add_workout(db_session, user_id, "w1", datetime(2024, 1, 2))
        add_plan(db_session, user_id, "p1", datetime(2024, 1, 9))

        refs = plan_session_page(db_session, user_id, SessionFilters(), [])

        assert set(refs) == {SessionRef("w1", SessionKind.REALIZED), SessionRef("p1", SessionKind.PLANNED)}

    def test_scoped_to_user(self, db_session, user_id):
        add_workout(db_session, user_id, "mine", datetime(2024, 1, 2))
        add_workout(db_session, "someone-else", "theirs", datetime(2024, 1, 2))

        refs = plan_session_page(db_session, user_id, SessionFilters(), [])

        assert _ids(refs) == ["mine"]

    def test_superseded_plan_is_excluded(self, db_session, user_id):
        add_plan(db_session, user_id, "p1", datetime(2024, 1, 2), status="completed")
        add_workout(db_session, user_id, "p1", datetime(2024, 1, 2), plan_session_id="p1")
        add_plan(db_session, user_id, "p2", datetime(2024, 1, 9))

        refs = plan_session_page(db_session, user_id, SessionFilters(), [])

        assert sorted(refs, key=lambda r: (r.kind, r.id)) == [
            SessionRef("p2", SessionKind.PLANNED),
            SessionRef("p1", SessionKind.REALIZED),
        ]

    def test_default_order_planned_first_then_number_desc(self, db_session, user_id):
        add_workout(db_session, user_id, "w1", datetime(2024, 1, 1), session_number=1)
        add_workout(db_session, user_id, "w2", datetime(2024, 1, 2), session_number=2)
        add_plan(db_session, user_id, "p3", datetime(2024, 1, 3), session_number=3)

        refs = plan_session_page(db_session, user_id, SessionFilters(), [])

        assert _ids(refs) == ["p3", "w2", "w1"]

    def test_sort_by_duration_normalizes_units(self, db_session, user_id):
        add_workout(db_session, user_id, "w30", datetime(2024, 1, 1), duration_seconds=1800)
        add_workout(db_session, user_id, "w50", datetime(2024, 1, 2), duration_seconds=3000)
        add_plan(db_session, user_id, "p40", datetime(2024, 1, 3), target_duration=40)

        refs = plan_session_page(db_session, user_id, SessionFilters(), parse_sort_param("duration:asc"))

        assert _ids(refs) == ["w30", "p40", "w50"]

    def test_nulls_last_in_both_directions(self, db_session, user_id):
        add_workout(db_session, user_id, "none", datetime(2024, 1, 1))
        add_workout(db_session, user_id, "low", datetime(2024, 1, 2), perceived_exertion=2)
        add_workout(db_session, user_id, "high", datetime(2024, 1, 3), perceived_exertion=9)

        asc = plan_session_page(db_session, user_id, SessionFilters(), parse_sort_param("perceivedExertion:asc"))
        desc = plan_session_page(db_session, user_id, SessionFilters(), parse_sort_param("perceivedExertion:desc"))

        assert _ids(asc) == ["low", "high", "none"]
        assert _ids(desc) == ["high", "low", "none"]

    def test_session_type_orders_by_code_point_after_ascii_folding(self, db_session, user_id):
        add_workout(db_session, user_id, "w1", datetime(2024, 1, 1), session_type="Éb")
        add_workout(db_session, user_id, "w2", datetime(2024, 1, 2), session_type="éa")
        add_workout(db_session, user_id, "w3", datetime(2024, 1, 3), session_type="a-b")
        add_workout(db_session, user_id, "w4", datetime(2024, 1, 4), session_type="Zone")

        refs = plan_session_page(db_session, user_id, SessionFilters(), parse_sort_param("sessionType:asc"))

        assert _ids(refs) == ["w3", "w4", "w1", "w2"]

    def test_session_type_key_uses_binary_collation_on_postgresql(self):
        expr = LOWER.to_sql(column("session_type"))

        assert str(expr.compile(dialect=postgresql.dialect())) == 'lower((session_type) COLLATE "C")'
        assert str(expr.compile(dialect=sqlite.dialect())) == "lower(session_type)"

    def test_pace_desc_is_fastest_first(self, db_session, user_id):
        add_workout(db_session, user_id, "slow", datetime(2024, 1, 1), avg_pace="6:00", avg_pace_seconds=360)
        add_workout(db_session, user_id, "fast", datetime(2024, 1, 2), avg_pace="4:30", avg_pace_seconds=270)

        refs = plan_session_page(db_session, user_id, SessionFilters(), parse_sort_param("avgPace:desc"))

        assert _ids(refs) == ["fast", "slow"]

    def test_planned_sessions_sort_last_by_date_unless_requested(self, db_session, user_id):
        add_workout(db_session, user_id, "w1", datetime(2024, 1, 5))
        add_plan(db_session, user_id, "p1", datetime(2024, 1, 1))

        default = plan_session_page(db_session, user_id, SessionFilters(), parse_sort_param("date:asc"))
        with_planned = plan_session_page(
            db_session,
            user_id,
            SessionFilters(planned_date_as_date=True),
            parse_sort_param("date:asc"),
        )

        assert _ids(default) == ["w1", "p1"]
        assert _ids(with_planned) == ["p1", "w1"]

    def test_pagination_pages_do_not_overlap(self, db_session, user_id):
        for i in range(7):
            add_workout(db_session, user_id, f"w{i}", datetime(2024, 1, 1), week=1)

        config = parse_sort_param("week:asc")
        pages = [
            plan_session_page(db_session, user_id, SessionFilters(), config, limit=3, offset=offset)
            for offset in (0, 3, 6)
        ]
        everything = plan_session_page(db_session, user_id, SessionFilters(), config)

        assert [len(page) for page in pages] == [3, 3, 1]
        assert [ref for page in pages for ref in page] == everything

    def test_limit_zero_returns_everything(self, db_session, user_id):
        for i in range(4):
            add_workout(db_session, user_id, f"w{i}", datetime(2024, 1, i + 1))

        refs = plan_session_page(db_session, user_id, SessionFilters(), [], limit=0, offset=2)

        assert len(refs) == 4


class TestFilters:
    """Test filters applied to both sides of the union."""

    def test_type_filter_applies_to_both_kinds(self, db_session, user_id):
        add_workout(db_session, user_id, "w-tempo", datetime(2024, 1, 1), session_type="Tempo")
        add_workout(db_session, user_id, "w-easy", datetime(2024, 1, 2), session_type="Easy")
        add_plan(db_session, user_id, "p-tempo", None, session_type="Tempo")

        refs = plan_session_page(db_session, user_id, SessionFilters(session_type="Tempo"), [])

        assert set(_ids(refs)) == {"w-tempo", "p-tempo"}

    def test_type_all_disables_filter(self, db_session, user_id):
        add_workout(db_session, user_id, "w1", datetime(2024, 1, 1), session_type="Tempo")
        add_workout(db_session, user_id, "w2", datetime(2024, 1, 2), session_type="Easy")

        refs = plan_session_page(db_session, user_id, SessionFilters(session_type="all"), [])

        assert len(refs) == 2

    def test_search_is_case_insensitive_over_comments_and_type(self, db_session, user_id):
        add_workout(db_session, user_id, "by-comment", datetime(2024, 1, 1), comments="Felt STRONG on hills")
        add_plan(db_session, user_id, "by-type", None, session_type="Strong intervals")
        add_workout(db_session, user_id, "other", datetime(2024, 1, 2), comments="recovery")

        refs = plan_session_page(db_session, user_id, SessionFilters(search="strong"), [])

        assert set(_ids(refs)) == {"by-comment", "by-type"}

    def test_search_treats_wildcards_literally(self, db_session, user_id):
        add_workout(db_session, user_id, "percent", datetime(2024, 1, 1), comments="100% effort")
        add_workout(db_session, user_id, "plain", datetime(2024, 1, 2), comments="100 effort")

        refs = plan_session_page(db_session, user_id, SessionFilters(search="100%"), [])

        assert _ids(refs) == ["percent"]

    def test_date_from_only_restricts_realized_sessions(self, db_session, user_id):
        add_workout(db_session, user_id, "old", datetime(2023, 12, 1))
        add_workout(db_session, user_id, "new", datetime(2024, 2, 1))
        add_plan(db_session, user_id, "plan", datetime(2023, 11, 1))

        refs = plan_session_page(db_session, user_id, SessionFilters(date_from=datetime(2024, 1, 1)), [])

        assert set(_ids(refs)) == {"new", "plan"}

    def test_status_filter_drops_one_side(self, db_session, user_id):
        add_workout(db_session, user_id, "w1", datetime(2024, 1, 1))
        add_plan(db_session, user_id, "p1", None)

        completed = plan_session_page(db_session, user_id, SessionFilters(status=StatusFilter.COMPLETED), [])
        planned = plan_session_page(db_session, user_id, SessionFilters(status=StatusFilter.PLANNED), [])

        assert _ids(completed) == ["w1"]
        assert _ids(planned) == ["p1"]


class TestCountAndTypes:
    def test_count_matches_filters(self, db_session, user_id):
        add_workout(db_session, user_id, "w1", datetime(2024, 1, 1), session_type="Tempo")
        add_workout(db_session, user_id, "w2", datetime(2024, 1, 2), session_type="Easy")
        add_plan(db_session, user_id, "p1", None, session_type="Tempo")

        assert count_sessions(db_session, user_id, SessionFilters()) == 3
        assert count_sessions(db_session, user_id, SessionFilters(session_type="Tempo")) == 2
        assert count_sessions(db_session, user_id, SessionFilters(status=StatusFilter.PLANNED)) == 1

    def test_session_types_are_distinct_sorted_and_non_empty(self, db_session, user_id):
        add_workout(db_session, user_id, "w1", datetime(2024, 1, 1), session_type="Tempo")
        add_workout(db_session, user_id, "w2", datetime(2024, 1, 2), session_type="")
        add_plan(db_session, user_id, "p1", None, session_type="Easy")
        add_plan(db_session, user_id, "p2", None, session_type="Tempo")

        assert list_session_types(db_session, user_id) == ["Easy", "Tempo"]
