"""
Game session lifecycle: WAITING -> ACTIVE -> COMPLETED.

Every function that mutates a game expects the caller to hold that game's
exclusive section (see ``locks.KeyedLocks``) and commits its own work. All
validation happens before the first write, so a rejected operation leaves the
stored state exactly as it was.
"""
from typing import List, Optional
import logging

from sqlalchemy import func, select as sa_select
from sqlmodel import Session, select

from . import board, crud
from .config import MAX_BOARD_SIZE, MIN_BOARD_SIZE
from .errors import (
    AlreadyJoined,
    CellOccupied,
    GameFull,
    GameNotAcceptingPlayers,
    GameNotActive,
    GameNotFound,
    InvalidConfiguration,
    InvalidMove,
    NotYourTurn,
    PlayerNotFound,
)
from .locks import with_game_lock, with_participants_lock
from .models import GameSession, GameStatus, Move, Participant, utcnow

logger = logging.getLogger(__name__)


TRANSITIONS = {
    GameStatus.WAITING: {GameStatus.ACTIVE},
    GameStatus.ACTIVE: {GameStatus.COMPLETED},
    GameStatus.COMPLETED: set(),
}


def _transition(game: GameSession, target: GameStatus) -> None:
    if target not in TRANSITIONS[game.status]:
        raise RuntimeError(f"illegal transition {game.status.value} -> {target.value} for game {game.id}")
    logger.info(
        "game_state_changed",
        extra={"game_id": game.id, "event": f"{game.status.value}->{target.value}"},
    )
    game.status = target


def create_game(session: Session, board_size: int) -> GameSession:
    if not isinstance(board_size, int) or isinstance(board_size, bool):
        raise InvalidConfiguration("Board size must be an integer")
    if board_size < MIN_BOARD_SIZE or board_size > MAX_BOARD_SIZE:
        raise InvalidConfiguration(f"Board size must be between {MIN_BOARD_SIZE} and {MAX_BOARD_SIZE}")
    game = GameSession(
        status=GameStatus.WAITING,
        board_size=board_size,
        grid_json=board.grid_to_json(board.empty_grid(board_size)),
    )
    session.add(game)
    session.commit()
    session.refresh(game)
    logger.info("game_created", extra={"game_id": game.id, "event": f"board_size={board_size}"})
    return game


def load_game(session: Session, game_id: int, for_update: bool = False) -> GameSession:
    if for_update:
        game = session.exec(with_game_lock(game_id)).first()
    else:
        game = session.get(GameSession, game_id)
    if game is None:
        raise GameNotFound(game_id)
    return game


def get_participants(session: Session, game_id: int, for_update: bool = False) -> List[Participant]:
    if for_update:
        stmt = with_participants_lock(game_id)
    else:
        stmt = select(Participant).where(Participant.game_id == game_id).order_by(Participant.player_order)
    return list(session.exec(stmt).all())


def join(session: Session, game_id: int, player_id: int) -> GameSession:
    if not crud.player_exists(session, player_id):
        raise PlayerNotFound(player_id)
    game = load_game(session, game_id, for_update=True)
    if game.status != GameStatus.WAITING:
        raise GameNotAcceptingPlayers()
    seated = get_participants(session, game_id, for_update=True)
    if any(p.player_id == player_id for p in seated):
        raise AlreadyJoined()
    if len(seated) >= 2:
        raise GameFull()

    order = len(seated) + 1
    session.add(Participant(game_id=game_id, player_id=player_id, player_order=order))
    logger.info("player_joined", extra={"game_id": game_id, "player_id": player_id, "event": f"order={order}"})

    if order == 2:
        first = next(p for p in seated if p.player_order == 1)
        _transition(game, GameStatus.ACTIVE)
        game.current_turn = first.player_id
        session.add(game)

    session.commit()
    session.refresh(game)
    return game


def _other_participant(seated: List[Participant], player_id: int) -> int:
    for p in seated:
        if p.player_id != player_id:
            return p.player_id
    raise RuntimeError("game has no opponent seated")


def submit_move(session: Session, game_id: int, player_id: int, row: int, col: int) -> GameSession:
    """Validate and apply one move; returns the committed game.

    The move number is taken from the game's own counter inside the locked
    section, never from a count of existing moves.
    """
    game = load_game(session, game_id, for_update=True)
    grid = board.grid_from_json(game.grid_json)

    if not board.validate_coordinates(grid, row, col):
        raise InvalidMove(f"Invalid move coordinates ({row}, {col})")
    if game.status != GameStatus.ACTIVE:
        raise GameNotActive()
    if game.current_turn is None or player_id != game.current_turn:
        raise NotYourTurn()
    if grid[row][col] is not None:
        raise CellOccupied()

    seated = get_participants(session, game_id)
    move_number = game.move_count + 1
    new_grid = board.place(grid, row, col, player_id)

    session.add(Move(game_id=game_id, player_id=player_id, row=row, col=col, move_number=move_number))
    game.move_count = move_number
    game.grid_json = board.grid_to_json(new_grid)

    winner = board.check_winner(new_grid)
    if winner is not None:
        _complete(game, winner_id=winner)
    elif board.is_full(new_grid):
        _complete(game, winner_id=None)
    else:
        game.current_turn = _other_participant(seated, player_id)

    session.add(game)
    session.commit()
    session.refresh(game)
    logger.debug(
        "move_applied",
        extra={"game_id": game_id, "player_id": player_id, "move_number": move_number},
    )
    return game


def _complete(game: GameSession, winner_id: Optional[int]) -> None:
    _transition(game, GameStatus.COMPLETED)
    game.winner_id = winner_id
    game.is_draw = winner_id is None
    game.current_turn = None
    game.completed_at = utcnow()
    logger.info(
        "game_completed",
        extra={"game_id": game.id, "player_id": winner_id, "event": "draw" if winner_id is None else "win"},
    )


def list_moves(session: Session, game_id: int) -> List[Move]:
    load_game(session, game_id)
    return list(
        session.exec(select(Move).where(Move.game_id == game_id).order_by(Move.move_number)).all()
    )


def count_moves_by(session: Session, game_id: int, player_id: int) -> int:
    return session.execute(
        sa_select(func.count(Move.id))
        .where(Move.game_id == game_id)
        .where(Move.player_id == player_id)
    ).scalar() or 0
