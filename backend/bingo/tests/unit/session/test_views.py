"""Tests for the admin-facing players and line-count views."""

import pytest

from bingo.session.room_registry import RoomRegistry
from bingo.session.session_store import SessionTable
from bingo.session.timer_manager import RoomTimerManager
from bingo.session.views import compute_line_count_view, compute_players_view

SECRET = "s3cret"


async def _never_expires(_room: str) -> None:
    return None


@pytest.fixture
def table():
    table = SessionTable(RoomRegistry(RoomTimerManager(), on_expire=_never_expires), SECRET)
    table.login("a1", "alice", "lobby", is_admin=True, admin_secret=SECRET)
    table.login("p1", "bob", "lobby", is_admin=False)
    table.login("p2", "carol", "lobby", is_admin=False)
    table.login("a2", "dave", "other", is_admin=True, admin_secret=SECRET)
    table.login("p3", "erin", "other", is_admin=False)
    return table


class TestPlayersView:
    def test_lists_only_players_in_login_order(self, table):
        view = compute_players_view(table, "lobby")

        assert view.players == ["bob", "carol"]
        assert view.count == 2

    def test_empty_room(self, table):
        view = compute_players_view(table, "nowhere")

        assert view.players == []
        assert view.count == 0


class TestLineCountView:
    def test_all_buckets_present(self, table):
        view = compute_line_count_view(table, "lobby")

        assert list(view) == list(range(15))
        assert view[0] == ["bob", "carol"]

    def test_groups_by_progress(self, table):
        table.record_progress("p1", 3)
        table.record_progress("p2", 3)

        view = compute_line_count_view(table, "lobby")

        assert view[3] == ["bob", "carol"]
        assert view[0] == []

    @pytest.mark.parametrize("line_count", [-1, 15, 100])
    def test_out_of_range_progress_skipped(self, table, line_count):
        table.record_progress("p1", line_count)

        view = compute_line_count_view(table, "lobby")

        assert sum(len(names) for names in view.values()) == 1
        assert "bob" not in [name for names in view.values() for name in names]

    def test_bucket_totals_match_in_range_players(self, table):
        table.record_progress("p1", 14)
        table.record_progress("p2", 20)

        view = compute_line_count_view(table, "lobby")

        in_range = [s for s in table.players_in_room("lobby") if 0 <= s.line_count <= 14]
        assert sum(len(names) for names in view.values()) == len(in_range)
