"""Unit tests for RoomRegistry admission, draws and the empty-room policy."""

import asyncio

import pytest

from bingo.session.errors import (
    DuplicateNumberError,
    InvalidNumberError,
    NoAdminOnlineError,
    RoomLockedError,
    RoomNotFoundError,
)
from bingo.session.models import RoomState
from bingo.session.room_registry import RoomRegistry
from bingo.session.timer_manager import RoomTimerManager


@pytest.fixture
def expired():
    return []


@pytest.fixture
def timers():
    return RoomTimerManager()


def _registry(timers, expired, **kwargs) -> RoomRegistry:
    async def on_expire(room: str) -> None:
        expired.append(room)

    return RoomRegistry(timers, on_expire=on_expire, **kwargs)


@pytest.fixture
def registry(timers, expired):
    return _registry(timers, expired)


class TestCreateOrJoin:
    def test_admin_creates_missing_room(self, registry):
        view = registry.create_or_join("lobby", as_admin=True, admin_online=False)

        assert view.created is True
        assert view.member_count == 1
        assert view.drawn_numbers == ()
        assert view.has_started is False
        assert registry.list_room_names() == ["lobby"]

    def test_admin_joining_existing_room_does_not_create(self, registry):
        registry.create_or_join("lobby", as_admin=True, admin_online=False)
        view = registry.create_or_join("lobby", as_admin=True, admin_online=True)

        assert view.created is False
        assert view.member_count == 2

    def test_player_cannot_create_room(self, registry):
        with pytest.raises(RoomNotFoundError):
            registry.create_or_join("ghost", as_admin=False, admin_online=False)
        assert registry.list_room_names() == []

    def test_player_needs_admin_online(self, registry):
        registry.create_or_join("lobby", as_admin=True, admin_online=False)

        with pytest.raises(NoAdminOnlineError):
            registry.create_or_join("lobby", as_admin=False, admin_online=False)
        assert registry.get_room("lobby").member_count == 1

    def test_player_joins_started_room_by_default(self, registry):
        registry.create_or_join("lobby", as_admin=True, admin_online=False)
        registry.record_draw("lobby", 5)

        view = registry.create_or_join("lobby", as_admin=False, admin_online=True)
        assert view.member_count == 2
        assert view.drawn_numbers == (5,)

    def test_started_room_rejects_players_when_locked(self, timers, expired):
        registry = _registry(timers, expired, lock_started_rooms=True)
        registry.create_or_join("lobby", as_admin=True, admin_online=False)
        registry.record_draw("lobby", 5)

        with pytest.raises(RoomLockedError):
            registry.create_or_join("lobby", as_admin=False, admin_online=True)

    def test_admin_rejoins_started_room_even_when_locked(self, timers, expired):
        registry = _registry(timers, expired, lock_started_rooms=True)
        registry.create_or_join("lobby", as_admin=True, admin_online=False)
        registry.record_draw("lobby", 5)

        view = registry.create_or_join("lobby", as_admin=True, admin_online=True)
        assert view.member_count == 2

    def test_has_room_tracks_presence(self, registry):
        assert not registry.has_room("lobby")
        registry.create_or_join("lobby", as_admin=True, admin_online=False)
        assert registry.has_room("lobby")
        registry.leave("lobby")
        assert not registry.has_room("lobby")

    def test_room_names_keep_creation_order(self, registry):
        for name in ("b", "a", "c"):
            registry.create_or_join(name, as_admin=True, admin_online=False)
        assert registry.list_room_names() == ["b", "a", "c"]


class TestRecordDraw:
    def test_draw_marks_room_started(self, registry):
        registry.create_or_join("lobby", as_admin=True, admin_online=False)

        assert registry.record_draw("lobby", 36) == (36,)
        assert registry.get_room("lobby").has_started is True

    @pytest.mark.parametrize("number", [0, 37, -1, True])
    def test_out_of_range_rejected(self, registry, number):
        registry.create_or_join("lobby", as_admin=True, admin_online=False)

        with pytest.raises(InvalidNumberError):
            registry.record_draw("lobby", number)
        assert registry.get_room("lobby").drawn_numbers == ()

    def test_duplicate_rejected(self, registry):
        registry.create_or_join("lobby", as_admin=True, admin_online=False)
        registry.record_draw("lobby", 7)

        with pytest.raises(DuplicateNumberError):
            registry.record_draw("lobby", 7)
        assert registry.get_room("lobby").drawn_numbers == (7,)

    def test_missing_room(self, registry):
        with pytest.raises(RoomNotFoundError):
            registry.record_draw("ghost", 7)


class TestLeave:
    def test_leave_missing_room(self, registry):
        assert registry.leave("ghost") is RoomState.MISSING

    def test_leave_with_members_remaining(self, registry):
        registry.create_or_join("lobby", as_admin=True, admin_online=False)
        registry.create_or_join("lobby", as_admin=False, admin_online=True)

        assert registry.leave("lobby") is RoomState.ACTIVE
        assert registry.get_room("lobby").member_count == 1

    def test_last_leave_deletes_immediately_by_default(self, registry):
        registry.create_or_join("lobby", as_admin=True, admin_online=False)
        registry.record_draw("lobby", 9)

        assert registry.leave("lobby") is RoomState.DELETED
        assert registry.get_room("lobby") is None

    def test_recreated_room_starts_empty(self, registry):
        registry.create_or_join("lobby", as_admin=True, admin_online=False)
        registry.record_draw("lobby", 9)
        registry.leave("lobby")

        view = registry.create_or_join("lobby", as_admin=True, admin_online=False)
        assert view.created is True
        assert view.drawn_numbers == ()
        assert view.has_started is False

    async def test_last_leave_schedules_deletion_with_grace(self, timers, expired):
        registry = _registry(timers, expired, grace_seconds=30)
        registry.create_or_join("lobby", as_admin=True, admin_online=False)

        assert registry.leave("lobby") is RoomState.PENDING_DELETION
        assert timers.has_timer("lobby")
        # still listed while pending
        assert registry.list_room_names() == ["lobby"]
        assert registry.get_room("lobby").pending_deletion is True
        timers.cancel_all()

    async def test_rejoin_cancels_pending_deletion(self, timers, expired):
        registry = _registry(timers, expired, grace_seconds=30)
        registry.create_or_join("lobby", as_admin=True, admin_online=False)
        registry.leave("lobby")

        registry.create_or_join("lobby", as_admin=True, admin_online=False)
        assert not timers.has_timer("lobby")
        assert timers.pending_rooms == []

    async def test_grace_timer_fires_callback(self, timers, expired):
        registry = _registry(timers, expired, grace_seconds=0.01)
        registry.create_or_join("lobby", as_admin=True, admin_online=False)
        registry.leave("lobby")

        await asyncio.sleep(0.05)
        assert expired == ["lobby"]


class TestExpireAndReconcileHooks:
    def test_expire_room_deletes_empty_room(self, registry):
        registry.create_or_join("lobby", as_admin=True, admin_online=False)
        registry.set_member_count("lobby", 0)

        assert registry.expire_room("lobby") is True
        assert registry.get_room("lobby") is None

    def test_expire_room_keeps_occupied_room(self, registry):
        registry.create_or_join("lobby", as_admin=True, admin_online=False)

        assert registry.expire_room("lobby") is False
        assert registry.get_room("lobby") is not None

    def test_set_member_count_returns_previous(self, registry):
        registry.create_or_join("lobby", as_admin=True, admin_online=False)

        assert registry.set_member_count("lobby", 4) == 1
        assert registry.get_room("lobby").member_count == 4
        assert registry.set_member_count("ghost", 1) is None

    def test_retire_if_idle(self, registry):
        registry.create_or_join("lobby", as_admin=True, admin_online=False)
        assert registry.retire_if_idle("lobby") is RoomState.ACTIVE

        registry.set_member_count("lobby", 0)
        assert registry.retire_if_idle("lobby") is RoomState.DELETED
        assert registry.retire_if_idle("lobby") is RoomState.MISSING
