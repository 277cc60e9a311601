from contextlib import asynccontextmanager
from typing import List, Optional
import time
import uuid

from fastapi import Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.middleware.base import BaseHTTPMiddleware

from . import config
from .database import create_tables, make_engine
from .deps import get_service
from .errors import NOT_FOUND, RULE, STORAGE, CellOccupied, GameError, NotYourTurn
from .logging_utils import get_logger, request_id_ctx, setup_logging
from .migrations import run_migrations
from .schemas import GameSnapshot, LeaderboardEntry, MoveView, PlayerStatsView, PlayerView
from .service import GameService

setup_logging(config.LOG_LEVEL)
logger = get_logger("gridgame")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        token = request_id_ctx.set(rid)
        start = time.time()
        client = request.client.host if request.client else "-"
        ua = request.headers.get("user-agent", "-")
        response = None
        try:
            response = await call_next(request)
            return response
        except Exception:
            logger.exception(
                "request_error",
                extra={"path": str(request.url), "method": request.method},
            )
            raise
        finally:
            duration_ms = int((time.time() - start) * 1000)
            status = getattr(response, "status_code", 500)
            logger.info(
                "request",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status": status,
                    "duration_ms": duration_ms,
                    "client": client,
                    "user_agent": ua,
                },
            )
            if response is not None:
                response.headers["X-Request-ID"] = rid
            request_id_ctx.reset(token)


def status_for(exc: GameError) -> int:
    if exc.category == NOT_FOUND:
        return 404
    if exc.category == STORAGE:
        return 503
    if isinstance(exc, (CellOccupied, NotYourTurn)):
        return 409
    if exc.category == RULE:
        return 400
    return 500


# --- request bodies (camelCase `playerId` or snake_case `player_id`) ---

class PlayerCreate(BaseModel):
    # blank or overlong names are rejected by the service as InvalidName (400)
    name: str


class GameCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    board_size: int = Field(config.DEFAULT_BOARD_SIZE, alias="boardSize")


class JoinRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    player_id: int = Field(..., alias="playerId")


class MoveRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    player_id: int = Field(..., alias="playerId")
    row: int
    col: int


def _build_default_service() -> GameService:
    engine = make_engine(config.DATABASE_URL)
    create_tables(engine)
    try:
        run_migrations(engine)
    except Exception as e:
        logger.warning("migrations_failed", extra={"error": str(e)})
    return GameService(engine)


def create_app(service: Optional[GameService] = None) -> FastAPI:
    """Build the HTTP adapter around ``service``.

    When no service is given one is constructed from ``DATABASE_URL`` at
    startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "service", None) is None:
            app.state.service = _build_default_service()
        yield

    app = FastAPI(
        title="Grid Game API",
        description="Two-player grid games with turn enforcement, stats and a leaderboard.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.service = service

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(GameError)
    async def game_error_handler(request: Request, exc: GameError):
        logger.info("game_error", extra={"kind": exc.kind, "method": request.method, "path": request.url.path})
        return JSONResponse(status_code=status_for(exc), content={"error": exc.to_dict()})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning("validation_error", extra={"method": request.method, "url": str(request.url), "errors": str(exc.errors())})
        return JSONResponse(
            status_code=422,
            content={
                "detail": jsonable_encoder(exc.errors()),
                "message": "Input validation failed"
            }
        )

    @app.get("/health", include_in_schema=False)
    def health():
        return {"status": "ok"}

    @app.get("/api/cache/stats", include_in_schema=False)
    def cache_stats(service: GameService = Depends(get_service)):
        return service.cache.get_stats()

    @app.post("/players", status_code=201, response_model=PlayerView)
    def create_player(body: PlayerCreate, service: GameService = Depends(get_service)):
        return service.create_player(body.name)

    @app.get("/players/{player_id}", response_model=PlayerView)
    def get_player(player_id: int, service: GameService = Depends(get_service)):
        return service.get_player(player_id)

    @app.get("/players/{player_id}/stats", response_model=PlayerStatsView)
    def get_player_stats(player_id: int, service: GameService = Depends(get_service)):
        return service.get_player_stats(player_id)

    @app.post("/games", status_code=201, response_model=GameSnapshot)
    def create_game(body: Optional[GameCreate] = None, service: GameService = Depends(get_service)):
        board_size = body.board_size if body is not None else config.DEFAULT_BOARD_SIZE
        return service.create_game(board_size)

    @app.get("/games/{game_id}", response_model=GameSnapshot)
    def get_game(game_id: int, service: GameService = Depends(get_service)):
        return service.get_game(game_id)

    @app.post("/games/{game_id}/join", response_model=GameSnapshot)
    def join_game(game_id: int, body: JoinRequest, service: GameService = Depends(get_service)):
        return service.join_game(game_id, body.player_id)

    @app.post("/games/{game_id}/moves", response_model=GameSnapshot)
    def submit_move(game_id: int, body: MoveRequest, service: GameService = Depends(get_service)):
        return service.submit_move(game_id, body.player_id, body.row, body.col)

    @app.get("/games/{game_id}/moves", response_model=List[MoveView])
    def list_moves(game_id: int, service: GameService = Depends(get_service)):
        return service.list_moves(game_id)

    @app.get("/leaderboard", response_model=List[LeaderboardEntry])
    def get_leaderboard(
        limit: int = Query(config.DEFAULT_LEADERBOARD_LIMIT, ge=1, le=config.LEADERBOARD_MAX_LIMIT),
        service: GameService = Depends(get_service),
    ):
        return service.get_leaderboard(limit)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
