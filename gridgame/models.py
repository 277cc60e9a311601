from enum import Enum
from typing import Optional
from datetime import datetime, timezone
from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GameStatus(str, Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"


class Player(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=100)
    created_at: datetime = Field(default_factory=utcnow)


class GameSession(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    status: GameStatus = GameStatus.WAITING
    board_size: int = 3
    # size x size JSON array of nullable player ids
    grid_json: str = ""
    current_turn: Optional[int] = Field(default=None, foreign_key="player.id")
    winner_id: Optional[int] = Field(default=None, foreign_key="player.id")
    is_draw: bool = False
    # monotonic counter owned by the game; only advanced under the game lock
    move_count: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None


class Participant(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("game_id", "player_id", name="uq_participant_game_player"),
        UniqueConstraint("game_id", "player_order", name="uq_participant_game_order"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    game_id: int = Field(foreign_key="gamesession.id", index=True)
    player_id: int = Field(foreign_key="player.id")
    player_order: int  # 1 or 2
    joined_at: datetime = Field(default_factory=utcnow)
    stats_recorded: bool = False


class Move(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("game_id", "move_number", name="uq_move_game_number"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    game_id: int = Field(foreign_key="gamesession.id", index=True)
    player_id: int = Field(foreign_key="player.id")
    row: int
    col: int
    move_number: int
    created_at: datetime = Field(default_factory=utcnow)


class PlayerStats(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    player_id: int = Field(foreign_key="player.id", unique=True)
    games_played: int = 0
    games_won: int = 0
    total_moves: int = 0
    win_rate: int = 0  # percentage * 100
    efficiency: Optional[int] = None  # average moves per win * 100, None until first win
    updated_at: datetime = Field(default_factory=utcnow)
