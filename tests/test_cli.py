import importlib
import json

import pytest

from mind_core.cli import cli_cleanup, cli_health, cli_sessions, cli_show, main
from mind_core.config import loader

from tests.helpers import at, stamped


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    """Point the CLI at a file store under tmp_path with a fresh config manager."""
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"storage": {"data_dir": str(tmp_path / "sessions")}}), encoding="utf-8")
    monkeypatch.setattr(loader, "_config_manager", None)
    monkeypatch.setattr(importlib.import_module("mind_core.cli.main"), "setup_logging", lambda **kwargs: None)
    for name in ("DATA_DIR", "USE_FILE_STORE", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return str(config_path)


def test_command_helpers(manager, memory_store):
    older = stamped("u1", "first", at(9))
    newer = stamped("u1", "second", at(10))
    memory_store.save(older)
    memory_store.save(newer)

    summaries = cli_sessions(manager, "u1")
    assert [s["session_id"] for s in summaries] == [newer.id, older.id]
    assert summaries[0]["concept"] == "second"
    assert summaries[0]["thoughts"] == 1

    assert cli_show(manager, older.id)["id"] == older.id
    assert cli_cleanup(manager) == {"deleted": 2}
    assert cli_health(manager) == {"status": "healthy"}


def test_main_round_trip(cli_env, capsys):
    from mind_core.config import load_config
    from mind_core.cli.main import get_manager

    manager = get_manager(load_config(cli_env))
    session = manager.create_session("user-42", "AI")
    manager.store.close()

    assert main(["--config", cli_env, "sessions", "user-42", "--json"]) == 0
    listed = json.loads(capsys.readouterr().out)
    assert [s["session_id"] for s in listed] == [session.id]

    assert main(["--config", cli_env, "show", session.id]) == 0
    assert json.loads(capsys.readouterr().out)["root_thought"]["content"] == "AI"

    assert main(["--config", cli_env, "health"]) == 0
    assert "healthy" in capsys.readouterr().out


def test_main_reports_errors(cli_env, capsys):
    assert main(["--config", cli_env, "show", "missing"]) == 1
    assert "session not found" in capsys.readouterr().out

    assert main(["--config", cli_env, "sessions", "nobody"]) == 0
    assert "No sessions found." in capsys.readouterr().out


def test_main_without_command_prints_help(cli_env, capsys):
    assert main(["--config", cli_env]) == 0
    assert "usage:" in capsys.readouterr().out
