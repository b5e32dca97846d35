"""Derived per-room views pushed to admins."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel

from bingo.session.models import MAX_LINE_COUNT

if TYPE_CHECKING:
    from bingo.session.session_store import SessionTable


class PlayersView(BaseModel):
    players: list[str]
    count: int


def compute_players_view(sessions: SessionTable, room: str) -> PlayersView:
    """Non-admin usernames in the room, in login order."""
    names = [s.username for s in sessions.players_in_room(room)]
    return PlayersView(players=names, count=len(names))


def compute_line_count_view(sessions: SessionTable, room: str) -> dict[int, list[str]]:
    """Group player usernames by completed lines.

    Every bucket from 0 to MAX_LINE_COUNT is present, even when empty. Players
    whose stored count falls outside that range are left out.
    """
    buckets: dict[int, list[str]] = {n: [] for n in range(MAX_LINE_COUNT + 1)}
    for session in sessions.players_in_room(room):
        bucket = buckets.get(session.line_count)
        if bucket is not None:
            bucket.append(session.username)
    return buckets
