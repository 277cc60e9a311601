import pytest

from gridgame.errors import InvalidName, PlayerNotFound


def test_create_and_get_player(service):
    p = service.create_player("  carol ")
    assert p.id is not None
    assert p.name == "carol"
    assert service.get_player(p.id) == p


def test_create_player_rejects_blank_and_long_names(service):
    with pytest.raises(InvalidName):
        service.create_player("")
    with pytest.raises(InvalidName):
        service.create_player("   ")
    with pytest.raises(InvalidName) as ei:
        service.create_player("x" * 101)
    assert ei.value.kind == "InvalidName"
    # exactly at the limit is fine
    assert service.create_player("y" * 100).name == "y" * 100


def test_unknown_player(service):
    with pytest.raises(PlayerNotFound) as ei:
        service.get_player(999)
    assert ei.value.category == "not_found"
    with pytest.raises(PlayerNotFound):
        service.get_player_stats(999)


def test_new_player_has_zeroed_stats(service):
    p = service.create_player("dave")
    st = service.get_player_stats(p.id)
    assert st.games_played == 0
    assert st.games_won == 0
    assert st.total_moves == 0
    assert st.win_rate == 0
    assert st.efficiency is None
