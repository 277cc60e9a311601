"""
Concurrency control helpers.

Two layers guard a game's read-decide-write sequence:

1. ``KeyedLocks``: an in-process mutual-exclusion section per key (game id,
   player id). This is what serializes concurrent callers in one process.
2. ``SELECT ... FOR UPDATE`` row locks (``with_game_lock`` and friends) so the
   same section also holds when the database is shared. SQLite ignores the
   clause; PostgreSQL and MySQL honour it.
"""
import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator

from sqlmodel import select

from .models import GameSession, Participant, PlayerStats


class KeyedLocks:
    """Registry of one lock per key.

    A key's lock exists only while someone holds or waits for it, so the
    registry does not grow with every game and player ever touched.
    """

    def __init__(self):
        self._locks: Dict[Hashable, threading.Lock] = {}
        self._holders: Dict[Hashable, int] = {}
        self._guard = threading.Lock()

    def _acquire_ref(self, key: Hashable) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            self._holders[key] = self._holders.get(key, 0) + 1
            return lock

    def _release_ref(self, key: Hashable) -> None:
        with self._guard:
            remaining = self._holders[key] - 1
            if remaining:
                self._holders[key] = remaining
            else:
                del self._holders[key]
                del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        """Hold the exclusive section for ``key`` for the duration of the block.

        Example:
            with game_locks.hold(game_id):
                # validate, apply and commit
                ...
        """
        lock = self._acquire_ref(key)
        try:
            with lock:
                yield
        finally:
            self._release_ref(key)


def with_game_lock(game_id: int):
    """Row-locking select for one game session.

    Usage:
        game = session.exec(with_game_lock(game_id)).first()
        if not game:
            raise GameNotFound(game_id)
    """
    return select(GameSession).where(GameSession.id == game_id).with_for_update()


def with_participants_lock(game_id: int):
    return (
        select(Participant)
        .where(Participant.game_id == game_id)
        .order_by(Participant.player_order)
        .with_for_update()
    )


def with_stats_lock(player_id: int):
    return select(PlayerStats).where(PlayerStats.player_id == player_id).with_for_update()
