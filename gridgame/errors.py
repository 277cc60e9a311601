"""
Typed failures raised by the game core.

Every failure carries a ``kind`` (stable name callers match on), a
``category`` used by adapters to pick a response code, and a message.
"""
from typing import Any, Dict


NOT_FOUND = "not_found"
RULE = "rule"
STORAGE = "storage"
POST_CONDITION = "post_condition"


class GameError(Exception):
    """Base class for all game core failures"""
    kind = "GameError"
    category = RULE
    default_message = "game error"

    def __init__(self, message: str = ""):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message}


# ============ not found ============

class GameNotFound(GameError):
    kind = "GameNotFound"
    category = NOT_FOUND

    def __init__(self, game_id):
        self.game_id = game_id
        super().__init__(f"Game {game_id} not found")


class PlayerNotFound(GameError):
    kind = "PlayerNotFound"
    category = NOT_FOUND

    def __init__(self, player_id):
        self.player_id = player_id
        super().__init__(f"Player {player_id} not found")


# ============ rule violations ============

class InvalidMove(GameError):
    kind = "InvalidMove"
    default_message = "Invalid move coordinates"


class GameNotActive(GameError):
    kind = "GameNotActive"
    default_message = "Game is not active"


class NotYourTurn(GameError):
    kind = "NotYourTurn"
    default_message = "Not your turn"


class CellOccupied(GameError):
    kind = "CellOccupied"
    default_message = "Cell is already occupied"


class GameFull(GameError):
    kind = "GameFull"
    default_message = "Game is full"


class AlreadyJoined(GameError):
    kind = "AlreadyJoined"
    default_message = "Player already joined this game"


class GameNotAcceptingPlayers(GameError):
    kind = "GameNotAcceptingPlayers"
    default_message = "Game is not accepting new players"


class InvalidConfiguration(GameError):
    kind = "InvalidConfiguration"
    default_message = "Invalid game configuration"


class InvalidName(GameError):
    kind = "InvalidName"
    default_message = "Player name is required"


# ============ infrastructure / post-conditions ============

class StorageUnavailable(GameError):
    """Persistence could not be reached; never a domain outcome"""
    kind = "StorageUnavailable"
    category = STORAGE
    default_message = "Storage unavailable"


class StatsUpdateFailed(GameError):
    """Statistics could not be recorded after a game was already completed"""
    kind = "StatsUpdateFailed"
    category = POST_CONDITION

    def __init__(self, game_id, player_id, message: str = ""):
        self.game_id = game_id
        self.player_id = player_id
        super().__init__(message or f"Failed to update stats for player {player_id} in game {game_id}")

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["player_id"] = self.player_id
        return d
