from gridgame import leaderboard
from gridgame.service import GameService


TOP_ROW_WIN = [(0, 0, 0), (1, 1, 0), (0, 0, 1), (1, 1, 1), (0, 0, 2)]
FOUR_MOVE_WIN = [(0, 0, 0), (1, 0, 1), (0, 1, 0), (1, 2, 0), (0, 1, 1), (1, 2, 2), (0, 1, 2)]


def win(service, winner, loser, sequence=TOP_ROW_WIN):
    g = service.create_game(3)
    service.join_game(g.id, winner.id)
    service.join_game(g.id, loser.id)
    for idx, r, c in sequence:
        service.submit_move(g.id, (winner, loser)[idx].id, r, c)


def test_empty_leaderboard_without_wins(service, two_players):
    assert service.get_leaderboard() == []


def test_leaderboard_ordering(service):
    alice, bob, carol, dave = (service.create_player(n) for n in ("alice", "bob", "carol", "dave"))
    # alice: 2 wins (3 and 4 moves -> 3.5), bob: 2 wins (3 and 3 -> 3.0), carol: 1 win
    win(service, alice, dave)
    win(service, alice, dave, FOUR_MOVE_WIN)
    win(service, bob, dave)
    win(service, bob, dave)
    win(service, carol, dave)

    board = service.get_leaderboard(10)
    assert [e.player_name for e in board] == ["bob", "alice", "carol"]
    assert [e.games_won for e in board] == [2, 2, 1]
    assert board[0].efficiency == 3.0
    assert board[1].efficiency == 3.5
    assert board[0].win_rate == 100.0
    # dave never won and never appears
    assert all(e.player_name != "dave" for e in board)

    for a, b in zip(board, board[1:]):
        assert a.games_won >= b.games_won
        if a.games_won == b.games_won:
            assert a.efficiency <= b.efficiency


def test_leaderboard_default_limit_is_three(service):
    players = [service.create_player(f"p{i}") for i in range(5)]
    loser = service.create_player("loser")
    for p in players:
        win(service, p, loser)
    assert len(service.get_leaderboard()) == 3
    assert len(service.get_leaderboard(2)) == 2
    assert len(service.get_leaderboard(50)) == 5


def test_leaderboard_cache_invalidated_by_completed_game(engine):
    service = GameService(engine, leaderboard_ttl=300)
    a, b = service.create_player("a"), service.create_player("b")
    assert service.get_leaderboard() == []
    # second read comes from cache
    service.get_leaderboard()
    assert service.cache.get_stats()["hits"] >= 1

    win(service, a, b)
    board = service.get_leaderboard()
    assert [e.player_id for e in board] == [a.id]


def test_game_finished_during_leaderboard_read_is_not_cached(engine, monkeypatch):
    service = GameService(engine, leaderboard_ttl=300)
    a, b = service.create_player("a"), service.create_player("b")
    real_top_players = leaderboard.top_players

    def top_players_then_finish_game(session, limit=3):
        entries = real_top_players(session, limit)
        monkeypatch.setattr(leaderboard, "top_players", real_top_players)
        # stats change after the query ran but before its result is stored
        win(service, a, b)
        return entries

    monkeypatch.setattr(leaderboard, "top_players", top_players_then_finish_game)
    assert service.get_leaderboard() == []
    assert [e.player_id for e in service.get_leaderboard()] == [a.id]


def test_cached_leaderboard_not_shared_with_callers(engine):
    service = GameService(engine, leaderboard_ttl=300)
    a, b = service.create_player("a"), service.create_player("b")
    win(service, a, b)

    first = service.get_leaderboard()
    first.clear()
    second = service.get_leaderboard()
    assert [e.player_id for e in second] == [a.id]
    second.pop()
    assert [e.player_id for e in service.get_leaderboard()] == [a.id]
    assert service.cache.get_stats()["hits"] == 2
