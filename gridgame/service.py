"""
In-process contract of the game core.

``GameService`` owns nothing global: it is built from an engine (plus an
optional cache) and hands out snapshots. Mutations of one game are
serialized through a per-game exclusive section; different games never
wait on each other.
"""
from typing import List, Optional
import logging
import threading

from sqlmodel import Session

from . import crud, leaderboard, state_machine, stats
from .cache import MemoryCache, cache_leaderboard, get_cached_leaderboard, invalidate_leaderboard_cache
from .config import DEFAULT_BOARD_SIZE, DEFAULT_LEADERBOARD_LIMIT, LEADERBOARD_CACHE_TTL
from .database import storage_guard
from .errors import PlayerNotFound
from .locks import KeyedLocks
from .models import GameSession, GameStatus
from .schemas import GameSnapshot, LeaderboardEntry, MoveView, PlayerStatsView, PlayerView

logger = logging.getLogger(__name__)


class GameService:

    def __init__(self, engine, cache: Optional[MemoryCache] = None, leaderboard_ttl: int = LEADERBOARD_CACHE_TTL):
        self.engine = engine
        self.cache = cache if cache is not None else MemoryCache()
        self.leaderboard_ttl = leaderboard_ttl
        self.game_locks = KeyedLocks()
        self.player_locks = KeyedLocks()
        # bumped on every stats change; a leaderboard read only caches what it
        # queried if no change happened in between
        self._leaderboard_generation = 0
        self._leaderboard_guard = threading.Lock()

    def _session(self) -> Session:
        return Session(self.engine)

    def _snapshot(self, session: Session, game: GameSession) -> GameSnapshot:
        return GameSnapshot.build(game, state_machine.get_participants(session, game.id))

    # ---- players ----

    @storage_guard
    def create_player(self, name: str) -> PlayerView:
        with self._session() as session:
            p = crud.create_player(session, name)
            return PlayerView(id=p.id, name=p.name)

    @storage_guard
    def get_player(self, player_id: int) -> PlayerView:
        with self._session() as session:
            p = crud.get_player(session, player_id)
            return PlayerView(id=p.id, name=p.name)

    @storage_guard
    def get_player_stats(self, player_id: int) -> PlayerStatsView:
        with self._session() as session:
            if not crud.player_exists(session, player_id):
                raise PlayerNotFound(player_id)
            return PlayerStatsView.build(player_id, crud.get_stats(session, player_id))

    # ---- games ----

    @storage_guard
    def create_game(self, board_size: int = DEFAULT_BOARD_SIZE) -> GameSnapshot:
        with self._session() as session:
            game = state_machine.create_game(session, board_size)
            return self._snapshot(session, game)

    @storage_guard
    def get_game(self, game_id: int) -> GameSnapshot:
        with self._session() as session:
            return self._snapshot(session, state_machine.load_game(session, game_id))

    @storage_guard
    def join_game(self, game_id: int, player_id: int) -> GameSnapshot:
        with self.game_locks.hold(game_id):
            with self._session() as session:
                game = state_machine.join(session, game_id, player_id)
                return self._snapshot(session, game)

    @storage_guard
    def submit_move(self, game_id: int, player_id: int, row: int, col: int) -> GameSnapshot:
        """Apply a move for ``player_id``; the whole validate-apply-commit runs
        inside the game's exclusive section, and so does stats recording when
        the move ends the game.
        """
        with self.game_locks.hold(game_id):
            with self._session() as session:
                game = state_machine.submit_move(session, game_id, player_id, row, col)
                completed = game.status == GameStatus.COMPLETED
                snapshot = self._snapshot(session, game)
            if completed:
                failures = stats.record_game_stats(
                    self.engine, game_id, self.player_locks, on_change=self._stats_changed
                )
                snapshot.warnings = [f.to_dict() for f in failures]
        return snapshot

    @storage_guard
    def list_moves(self, game_id: int) -> List[MoveView]:
        with self._session() as session:
            return [MoveView.build(m) for m in state_machine.list_moves(session, game_id)]

    @storage_guard
    def record_game_stats(self, game_id: int) -> List[dict]:
        """Re-run stats recording for a completed game, e.g. after StatsUpdateFailed.

        Participants already recorded are skipped, so this is safe to repeat.
        """
        with self.game_locks.hold(game_id):
            failures = stats.record_game_stats(
                self.engine, game_id, self.player_locks, on_change=self._stats_changed
            )
        return [f.to_dict() for f in failures]

    # ---- leaderboard ----

    def _stats_changed(self) -> None:
        with self._leaderboard_guard:
            self._leaderboard_generation += 1
            invalidate_leaderboard_cache(self.cache)

    @storage_guard
    def get_leaderboard(self, limit: int = DEFAULT_LEADERBOARD_LIMIT) -> List[LeaderboardEntry]:
        cached = get_cached_leaderboard(self.cache, limit)
        if cached is not None:
            return list(cached)
        with self._leaderboard_guard:
            generation = self._leaderboard_generation
        with self._session() as session:
            entries = leaderboard.top_players(session, limit)
        with self._leaderboard_guard:
            if generation == self._leaderboard_generation:
                cache_leaderboard(self.cache, limit, list(entries), self.leaderboard_ttl)
        return entries
