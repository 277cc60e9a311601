from typing import Optional
import logging

from sqlmodel import Session, select

from . import models
from .config import MAX_NAME_LENGTH
from .errors import InvalidName, PlayerNotFound

logger = logging.getLogger(__name__)


def normalize_name(name: Optional[str]) -> str:
    if name is None:
        raise InvalidName()
    v = name.strip()
    if not v:
        raise InvalidName()
    if len(v) > MAX_NAME_LENGTH:
        raise InvalidName(f"Player name too long (max {MAX_NAME_LENGTH} characters)")
    return v


def create_player(session: Session, name: str) -> models.Player:
    """Create a player together with a zeroed stats row."""
    p = models.Player(name=normalize_name(name))
    session.add(p)
    session.flush()
    session.add(models.PlayerStats(player_id=p.id))
    session.commit()
    session.refresh(p)
    logger.info("player_created", extra={"player_id": p.id})
    return p


def get_player(session: Session, player_id: int) -> models.Player:
    p = session.get(models.Player, player_id)
    if p is None:
        raise PlayerNotFound(player_id)
    return p


def player_exists(session: Session, player_id: int) -> bool:
    return session.get(models.Player, player_id) is not None


def get_stats(session: Session, player_id: int) -> Optional[models.PlayerStats]:
    return session.exec(
        select(models.PlayerStats).where(models.PlayerStats.player_id == player_id)
    ).first()
