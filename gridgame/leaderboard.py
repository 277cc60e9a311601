from typing import List

from sqlalchemy import desc, select as sa_select
from sqlmodel import Session, col

from . import models
from .schemas import LeaderboardEntry


def top_players(session: Session, limit: int = 3) -> List[LeaderboardEntry]:
    """Players with at least one win, most wins first.

    Ties on wins go to the lower efficiency (fewer moves per win), then to
    the older player id so the order is stable.
    """
    if limit <= 0:
        return []
    stmt = (
        sa_select(models.Player, models.PlayerStats)
        .join(models.PlayerStats, col(models.PlayerStats.player_id) == col(models.Player.id))
        .where(col(models.PlayerStats.games_won) > 0)
        .order_by(
            desc(models.PlayerStats.games_won),
            col(models.PlayerStats.efficiency).asc(),
            col(models.Player.id).asc(),
        )
        .limit(limit)
    )
    rows = session.execute(stmt).all()
    return [LeaderboardEntry.build(player, stats) for player, stats in rows]
