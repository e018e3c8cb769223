import argparse

import pytest

from core.session_store import SessionContext, TokenStore
from scripts.predictions_cli import main, parse_pick


def test_parse_pick() -> None:
    assert parse_pick("5:2-1") == (5, "2", "1")


def test_parse_pick_invalid() -> None:
    with pytest.raises(argparse.ArgumentTypeError):
        parse_pick("5-2-1")


def test_login_show_set_logout(remote_client, store_state, capsys) -> None:
    # TokenStore di default: PREDICTOR_DATA_DIR/session.json (tmp_path)
    assert main(["show"], store=remote_client) == 2

    assert main(["login", "alice", "secret"], store=remote_client) == 0
    assert TokenStore().load().username == "alice"

    assert main(["show"], store=remote_client) == 0
    out = capsys.readouterr().out
    assert "user=alice locked=False points=3" in out
    assert "* #1 [Group A] Brazil 2:0 Spain  final 2:1  +3" in out

    assert main(["set", "5:3-1", "2:x-2"], store=remote_client) == 0
    out = capsys.readouterr().out
    assert "Predictions saved successfully" in out
    # input non numerico coercito a 0
    assert store_state.predictions["alice"][2] == {"home": 0, "away": 2}
    assert store_state.predictions["alice"][5] == {"home": 3, "away": 1}

    assert main(["set", "404:1-1"], store=remote_client) == 1

    assert main(["logout"], store=remote_client) == 0
    assert TokenStore().load() is None


def test_login_failure(remote_client, capsys) -> None:
    assert main(["login", "alice", "nope"], store=remote_client) == 1
    assert "[error] Invalid credentials" in capsys.readouterr().out


def test_leaderboard_standings(remote_client, logged_in_token, capsys) -> None:
    TokenStore().save(SessionContext(token=logged_in_token, username="alice"))
    assert main(["leaderboard"], store=remote_client) == 0
    assert main(["standings"], store=remote_client) == 0
    out = capsys.readouterr().out
    assert "1. alice 3" in out
    assert "A Brazil GF=2 GA=1 Pts=3" in out
