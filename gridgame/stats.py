"""
Statistics aggregation for completed games.

Stored values are scaled integers: ``win_rate`` is a percentage times 100
and ``efficiency`` is the average number of own moves per won game times 100.
Each participant is recorded in its own transaction that also flips
``Participant.stats_recorded``, so a game is counted at most once per player
no matter how many times recording is retried.
"""
import math
from typing import Callable, List, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from . import state_machine
from .errors import StatsUpdateFailed
from .locks import KeyedLocks, with_stats_lock
from .models import GameSession, GameStatus, Participant, PlayerStats, utcnow

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def win_rate(games_won: int, games_played: int) -> int:
    if games_played <= 0:
        return 0
    return round_half_up(games_won / games_played * 10000)


def next_efficiency(old_efficiency: Optional[int], old_games_won: int, winning_moves: int) -> int:
    """Fold one more win into the running average of moves per win."""
    total = (old_efficiency or 0) / 100 * old_games_won + winning_moves
    return round_half_up(total / (old_games_won + 1) * 100)


def apply_result(stats: PlayerStats, won: bool, moves_made: int) -> PlayerStats:
    if won:
        stats.efficiency = next_efficiency(stats.efficiency, stats.games_won, moves_made)
        stats.games_won += 1
    stats.games_played += 1
    stats.total_moves += moves_made
    stats.win_rate = win_rate(stats.games_won, stats.games_played)
    stats.updated_at = utcnow()
    return stats


def record_participant(session: Session, game: GameSession, participant: Participant) -> bool:
    """Record one participant's result; returns False when already recorded."""
    if participant.stats_recorded:
        return False
    stats = session.exec(with_stats_lock(participant.player_id)).first()
    if stats is None:
        stats = PlayerStats(player_id=participant.player_id)
    moves_made = state_machine.count_moves_by(session, game.id, participant.player_id)
    apply_result(stats, won=game.winner_id == participant.player_id, moves_made=moves_made)
    participant.stats_recorded = True
    session.add(stats)
    session.add(participant)
    session.commit()
    return True


def record_game_stats(
    engine,
    game_id: int,
    player_locks: KeyedLocks,
    on_change: Optional[Callable[[], None]] = None,
) -> List[StatsUpdateFailed]:
    """Update every participant's stats for a completed game.

    Failures are logged and returned, never raised: the game outcome is
    already committed and stays the primary fact.
    """
    try:
        with Session(engine) as session:
            game = state_machine.load_game(session, game_id)
            if game.status != GameStatus.COMPLETED:
                return []
            player_ids = [p.player_id for p in state_machine.get_participants(session, game_id)]
    except SQLAlchemyError as e:
        logger.error("stats_update_failed", extra={"game_id": game_id, "error": str(e)}, exc_info=True)
        return [StatsUpdateFailed(game_id, None, "Could not load participants for stats")]

    failures: List[StatsUpdateFailed] = []
    changed = False
    for player_id in player_ids:
        try:
            with player_locks.hold(player_id):
                with Session(engine) as session:
                    game = state_machine.load_game(session, game_id)
                    participant = next(
                        p for p in state_machine.get_participants(session, game_id, for_update=True)
                        if p.player_id == player_id
                    )
                    changed = record_participant(session, game, participant) or changed
        except Exception as e:
            logger.error(
                "stats_update_failed",
                extra={"game_id": game_id, "player_id": player_id, "error": str(e)},
                exc_info=True,
            )
            failures.append(StatsUpdateFailed(game_id, player_id))

    if changed and on_change is not None:
        on_change()
    return failures
