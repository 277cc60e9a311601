"""Two-player grid games: turn-safe move submission, stats and leaderboard."""

__version__ = "0.1.0"
