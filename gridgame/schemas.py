from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from .board import Grid, grid_from_json
from .models import GameSession, GameStatus, Move, Participant, Player, PlayerStats


class PlayerView(BaseModel):
    id: int
    name: str


class ParticipantView(BaseModel):
    player_id: int
    order: int
    joined_at: datetime


class GameSnapshot(BaseModel):
    """Read-only copy of a game's state at the moment an operation committed."""
    id: int
    status: GameStatus
    board_size: int
    grid: Grid
    current_turn: Optional[int] = None
    winner_id: Optional[int] = None
    is_draw: bool = False
    move_count: int = 0
    created_at: datetime
    completed_at: Optional[datetime] = None
    participants: List[ParticipantView] = Field(default_factory=list)
    # non-fatal post-conditions such as StatsUpdateFailed
    warnings: List[Dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def build(cls, game: GameSession, participants: List[Participant]) -> "GameSnapshot":
        return cls(
            id=game.id,
            status=game.status,
            board_size=game.board_size,
            grid=grid_from_json(game.grid_json),
            current_turn=game.current_turn,
            winner_id=game.winner_id,
            is_draw=game.is_draw,
            move_count=game.move_count,
            created_at=game.created_at,
            completed_at=game.completed_at,
            participants=[
                ParticipantView(player_id=p.player_id, order=p.player_order, joined_at=p.joined_at)
                for p in sorted(participants, key=lambda p: p.player_order)
            ],
        )


class MoveView(BaseModel):
    game_id: int
    player_id: int
    row: int
    col: int
    move_number: int
    created_at: datetime

    @classmethod
    def build(cls, move: Move) -> "MoveView":
        return cls(
            game_id=move.game_id,
            player_id=move.player_id,
            row=move.row,
            col=move.col,
            move_number=move.move_number,
            created_at=move.created_at,
        )


class PlayerStatsView(BaseModel):
    """Stats in human units: win_rate in percent, efficiency in average moves per win."""
    player_id: int
    games_played: int = 0
    games_won: int = 0
    total_moves: int = 0
    win_rate: float = 0.0
    efficiency: Optional[float] = None

    @classmethod
    def build(cls, player_id: int, stats: Optional[PlayerStats]) -> "PlayerStatsView":
        if stats is None:
            return cls(player_id=player_id)
        return cls(
            player_id=player_id,
            games_played=stats.games_played,
            games_won=stats.games_won,
            total_moves=stats.total_moves,
            win_rate=stats.win_rate / 100,
            efficiency=None if stats.efficiency is None else stats.efficiency / 100,
        )


class LeaderboardEntry(BaseModel):
    player_id: int
    player_name: str
    games_won: int
    win_rate: float
    efficiency: Optional[float] = None

    @classmethod
    def build(cls, player: Player, stats: PlayerStats) -> "LeaderboardEntry":
        return cls(
            player_id=player.id,
            player_name=player.name,
            games_won=stats.games_won,
            win_rate=stats.win_rate / 100,
            efficiency=None if stats.efficiency is None else stats.efficiency / 100,
        )
