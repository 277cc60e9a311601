import json
from typing import List, Optional


Grid = List[List[Optional[int]]]


def empty_grid(size: int) -> Grid:
    return [[None] * size for _ in range(size)]


def grid_to_json(grid: Grid) -> str:
    return json.dumps(grid)


def grid_from_json(raw: str) -> Grid:
    return json.loads(raw) if raw else []


def validate_coordinates(grid: Grid, row: int, col: int) -> bool:
    n = len(grid)
    return 0 <= row < n and 0 <= col < n


def _line_winner(cells) -> Optional[int]:
    first = cells[0]
    if first is None:
        return None
    for c in cells[1:]:
        if c != first:
            return None
    return first


def lines(grid: Grid):
    """Yield every winning line: rows, then columns, then both diagonals."""
    n = len(grid)
    for r in range(n):
        yield grid[r]
    for c in range(n):
        yield [grid[r][c] for r in range(n)]
    yield [grid[i][i] for i in range(n)]
    yield [grid[i][n - 1 - i] for i in range(n)]


def check_winner(grid: Grid) -> Optional[int]:
    if not grid:
        return None
    for line in lines(grid):
        winner = _line_winner(line)
        if winner is not None:
            return winner
    return None


def is_full(grid: Grid) -> bool:
    return all(cell is not None for row in grid for cell in row)


def place(grid: Grid, row: int, col: int, player_id: int) -> Grid:
    # copy so the caller's snapshot is never mutated
    new_grid = [list(r) for r in grid]
    new_grid[row][col] = player_id
    return new_grid
