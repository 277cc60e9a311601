import os


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./gridgame.db")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Leaderboard reads are cached; 0 disables
LEADERBOARD_CACHE_TTL = int(os.getenv("LEADERBOARD_CACHE_TTL", "30"))
LEADERBOARD_MAX_LIMIT = int(os.getenv("LEADERBOARD_MAX_LIMIT", "100"))
DEFAULT_LEADERBOARD_LIMIT = 3

MIN_BOARD_SIZE = 3
MAX_BOARD_SIZE = 10
DEFAULT_BOARD_SIZE = 3

MAX_NAME_LENGTH = 100
