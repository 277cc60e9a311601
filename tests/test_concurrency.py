import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from gridgame.errors import GameError, GameNotAcceptingPlayers
from gridgame.locks import KeyedLocks
from gridgame.models import GameStatus


def race(n, fn):
    """Run ``fn(i)`` from ``n`` threads released at the same moment.

    Returns a list of (result, error) pairs.
    """
    barrier = threading.Barrier(n)

    def worker(i):
        barrier.wait()
        try:
            return fn(i), None
        except GameError as e:
            return None, e

    with ThreadPoolExecutor(max_workers=n) as pool:
        return list(pool.map(worker, range(n)))


def test_concurrent_moves_on_same_cell_have_one_winner(service, active_game):
    game_id, p1, p2 = active_game
    n = 8
    outcomes = race(n, lambda i: service.submit_move(game_id, p1.id, 0, 0))

    successes = [r for r, e in outcomes if e is None]
    failures = [e for r, e in outcomes if e is not None]
    assert len(successes) == 1
    assert len(failures) == n - 1
    assert all(e.category == "rule" for e in failures)

    snap = service.get_game(game_id)
    assert snap.grid[0][0] == p1.id
    assert sum(1 for row in snap.grid for c in row if c is not None) == 1
    assert snap.current_turn == p2.id
    assert [m.move_number for m in service.list_moves(game_id)] == [1]


def test_both_players_racing_for_one_cell(service, active_game):
    game_id, p1, p2 = active_game
    outcomes = race(6, lambda i: service.submit_move(game_id, (p1, p2)[i % 2].id, 1, 1))
    successes = [r for r, e in outcomes if e is None]
    assert len(successes) == 1
    assert successes[0].grid[1][1] == p1.id


def test_racing_second_joiners_first_committer_wins(service, two_players):
    p1, p2 = two_players
    p3 = service.create_player("carol")
    g = service.create_game(3)
    service.join_game(g.id, p1.id)

    contenders = [p2, p3]
    outcomes = race(2, lambda i: service.join_game(g.id, contenders[i].id))
    errors = [e for r, e in outcomes if e is not None]
    assert len(errors) == 1
    assert isinstance(errors[0], GameNotAcceptingPlayers)

    snap = service.get_game(g.id)
    assert snap.status == GameStatus.ACTIVE
    assert len(snap.participants) == 2
    assert snap.current_turn == p1.id


def test_move_numbers_stay_contiguous_under_contention(service, active_game):
    game_id, p1, p2 = active_game
    players = [p1, p2]
    cells = [(r, c) for r in range(3) for c in range(3)]

    # every thread keeps trying any free cell as whoever is on turn
    def hammer(i):
        made = 0
        for r, c in cells:
            snap = service.get_game(game_id)
            if snap.status != GameStatus.ACTIVE:
                break
            try:
                service.submit_move(game_id, players[(i + r) % 2].id, r, c)
                made += 1
            except GameError:
                pass
        return made

    race(6, hammer)
    moves = service.list_moves(game_id)
    assert [m.move_number for m in moves] == list(range(1, len(moves) + 1))
    # players strictly alternate in the committed log
    for a, b in zip(moves, moves[1:]):
        assert a.player_id != b.player_id


def test_concurrent_completions_do_not_lose_stats(service):
    champ = service.create_player("champ")
    opponents = [service.create_player(f"opp{i}") for i in range(5)]
    games = []
    for opp in opponents:
        g = service.create_game(3)
        service.join_game(g.id, champ.id)
        service.join_game(g.id, opp.id)
        for idx, r, c in [(0, 0, 0), (1, 1, 0), (0, 0, 1), (1, 1, 1)]:
            service.submit_move(g.id, (champ, opp)[idx].id, r, c)
        games.append(g.id)

    outcomes = race(len(games), lambda i: service.submit_move(games[i], champ.id, 0, 2))
    assert all(e is None for r, e in outcomes)
    assert all(r.winner_id == champ.id for r, e in outcomes)

    st = service.get_player_stats(champ.id)
    assert st.games_played == 5
    assert st.games_won == 5
    assert st.efficiency == 3.0
    assert st.total_moves == 15
    assert len(service.game_locks) == 0
    assert len(service.player_locks) == 0


def test_lock_registry_empties_after_many_games(service, two_players):
    p1, p2 = two_players
    for _ in range(50):
        g = service.create_game(3)
        service.join_game(g.id, p1.id)
        service.join_game(g.id, p2.id)
    assert len(service.game_locks) == 0


def test_keyed_lock_kept_while_contended():
    locks = KeyedLocks()
    inside = []
    release = threading.Event()

    def hold_key(i):
        with locks.hold("g"):
            inside.append(i)
            if i == 0:
                release.wait(5)
        return i

    with ThreadPoolExecutor(max_workers=3) as pool:
        first = pool.submit(hold_key, 0)
        while not inside:
            release.wait(0.01)
        waiters = [pool.submit(hold_key, i) for i in (1, 2)]
        # the holder and any waiters share the one registered lock
        assert len(locks) == 1
        assert inside == [0]
        release.set()
        first.result()
        for w in waiters:
            w.result()

    assert sorted(inside) == [0, 1, 2]
    assert len(locks) == 0

    # a failing block still releases its reference
    with pytest.raises(ValueError):
        with locks.hold("h"):
            raise ValueError("boom")
    assert len(locks) == 0
