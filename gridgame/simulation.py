"""
Demo driver: plays a batch of games between random pairs of players and
reports the resulting stats and leaderboard.

    python -m gridgame.simulation --players 4 --games 5 --workers 2
"""
import argparse
import random
import tempfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, List, Optional

from .database import create_tables, make_engine
from .logging_utils import get_logger, setup_logging
from .models import GameStatus
from .schemas import GameSnapshot, PlayerView
from .service import GameService

logger = get_logger("gridgame.simulation")


def play_game(service: GameService, first: PlayerView, second: PlayerView, board_size: int = 3) -> GameSnapshot:
    """Play one game where each side takes the first free cell."""
    game = service.create_game(board_size)
    service.join_game(game.id, first.id)
    snap = service.join_game(game.id, second.id)
    while snap.status == GameStatus.ACTIVE:
        mover = snap.current_turn
        cell = next(
            (r, c)
            for r in range(board_size)
            for c in range(board_size)
            if snap.grid[r][c] is None
        )
        snap = service.submit_move(game.id, mover, cell[0], cell[1])
    return snap


def run_simulation(
    service: GameService,
    num_players: int = 4,
    num_games: int = 5,
    workers: int = 1,
    board_size: int = 3,
    seed: Optional[int] = None,
) -> Dict[str, Any]:
    rng = random.Random(seed)
    players = [service.create_player(f"Player{i + 1}") for i in range(num_players)]
    pairings = []
    for _ in range(num_games):
        a, b = rng.sample(players, 2)
        pairings.append((a, b))

    with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
        results: List[GameSnapshot] = list(
            pool.map(lambda pair: play_game(service, pair[0], pair[1], board_size), pairings)
        )

    draws = sum(1 for r in results if r.is_draw)
    completed = sum(1 for r in results if r.status == GameStatus.COMPLETED)
    summary = {
        "total_games": num_games,
        "completed_games": completed,
        "draws": draws,
        "leaderboard": [e.model_dump() for e in service.get_leaderboard(num_players)],
        "player_stats": [service.get_player_stats(p.id).model_dump() for p in players],
    }
    logger.info("simulation_finished", extra={"event": f"completed={completed} draws={draws}"})
    return summary


def main(argv=None):
    parser = argparse.ArgumentParser(description="Simulate grid games")
    parser.add_argument("--players", type=int, default=4)
    parser.add_argument("--games", type=int, default=5)
    parser.add_argument("--workers", type=int, default=1)
    parser.add_argument("--board-size", type=int, default=3)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--database-url", default=None, help="defaults to a throwaway SQLite file")
    args = parser.parse_args(argv)

    setup_logging()
    with tempfile.TemporaryDirectory() as tmp:
        url = args.database_url or f"sqlite:///{Path(tmp) / 'simulation.db'}"
        engine = make_engine(url)
        create_tables(engine)
        service = GameService(engine, leaderboard_ttl=0)
        summary = run_simulation(
            service,
            num_players=args.players,
            num_games=args.games,
            workers=args.workers,
            board_size=args.board_size,
            seed=args.seed,
        )
        engine.dispose()

    print(f"Games: {summary['completed_games']}/{summary['total_games']} completed, {summary['draws']} draws")
    print("Leaderboard:")
    for rank, entry in enumerate(summary["leaderboard"], start=1):
        eff = entry["efficiency"]
        print(f"  {rank}. {entry['player_name']}: {entry['games_won']} wins, "
              f"{entry['win_rate']:.2f}% win rate, {eff:.2f} moves/win")
    print("Player stats:")
    for s in summary["player_stats"]:
        print(f"  player {s['player_id']}: played={s['games_played']} won={s['games_won']} "
              f"win_rate={s['win_rate']:.2f}%")
    return summary


if __name__ == "__main__":
    main()
