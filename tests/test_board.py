from gridgame import board


def test_empty_grid_shape():
    g = board.empty_grid(4)
    assert len(g) == 4 and all(len(r) == 4 for r in g)
    assert all(c is None for r in g for c in r)


def test_validate_coordinates_bounds():
    g = board.empty_grid(3)
    assert board.validate_coordinates(g, 0, 0)
    assert board.validate_coordinates(g, 2, 2)
    assert not board.validate_coordinates(g, 3, 0)
    assert not board.validate_coordinates(g, 0, 3)
    assert not board.validate_coordinates(g, -1, 0)
    assert not board.validate_coordinates(g, 0, -1)


def test_check_winner_row_column_and_diagonals():
    g = board.empty_grid(3)
    g[1] = [7, 7, 7]
    assert board.check_winner(g) == 7

    g = board.empty_grid(3)
    for r in range(3):
        g[r][2] = 5
    assert board.check_winner(g) == 5

    g = board.empty_grid(3)
    for i in range(3):
        g[i][i] = 9
    assert board.check_winner(g) == 9

    g = board.empty_grid(3)
    for i in range(3):
        g[i][2 - i] = 4
    assert board.check_winner(g) == 4


def test_check_winner_none_for_empty_and_partial():
    assert board.check_winner(board.empty_grid(3)) is None
    g = board.empty_grid(3)
    g[0] = [1, 1, None]
    g[1] = [2, 2, None]
    assert board.check_winner(g) is None
    # mixed line does not win
    g = [[1, 2, 1], [None, None, None], [None, None, None]]
    assert board.check_winner(g) is None


def test_draw_grid_has_no_winner_and_is_full():
    g = [
        [1, 2, 1],
        [1, 2, 2],
        [2, 1, 1],
    ]
    assert board.check_winner(g) is None
    assert board.is_full(g)


def test_larger_board_needs_full_line():
    g = board.empty_grid(5)
    for c in range(4):
        g[0][c] = 3
    assert board.check_winner(g) is None
    g[0][4] = 3
    assert board.check_winner(g) == 3


def test_place_does_not_mutate_input():
    g = board.empty_grid(3)
    g2 = board.place(g, 1, 1, 8)
    assert g[1][1] is None
    assert g2[1][1] == 8


def test_grid_json_round_trip_keeps_nulls():
    g = board.place(board.empty_grid(3), 0, 2, 1)
    raw = board.grid_to_json(g)
    assert "null" in raw
    assert board.grid_from_json(raw) == g
