import sys
from pathlib import Path
import pytest

# Ensure project root is on sys.path so tests can import the `gridgame` package
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from gridgame.database import create_tables, make_engine  # noqa: E402
from gridgame.service import GameService  # noqa: E402


@pytest.fixture()
def engine(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    create_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def service(engine):
    return GameService(engine)


@pytest.fixture()
def two_players(service):
    return service.create_player("alice"), service.create_player("bob")


@pytest.fixture()
def active_game(service, two_players):
    p1, p2 = two_players
    game = service.create_game(3)
    service.join_game(game.id, p1.id)
    service.join_game(game.id, p2.id)
    return game.id, p1, p2
