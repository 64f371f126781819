import pytest

from app import cli, database
import app.migrations.runner as runner_module
from app.migrations.runner import MIGRATIONS_COLLECTION


@pytest.fixture
def connected(monkeypatch, fake_db):
    def fake_initialize_db(uri=None, db_name=None):
        database.db = fake_db
        return True

    monkeypatch.setattr(database, "initialize_db", fake_initialize_db)
    return fake_db


def test_migrate_up_and_down(connected, capsys):
    assert cli.main(["migrate", "up"]) == 0
    assert "Applied 1767160004_create_instruments" in capsys.readouterr().out

    assert cli.main(["migrate", "down", "2"]) == 0
    out = capsys.readouterr().out
    assert "Reverted 1767160004_create_instruments" in out
    assert "Reverted 1766960500_create_habits" in out

    remaining = [doc["_id"] for doc in connected[MIGRATIONS_COLLECTION].find({})]
    assert remaining == ["1735422600_create_users"]


def test_migrate_up_nothing_pending(connected, capsys):
    cli.main(["migrate", "up"])
    capsys.readouterr()

    assert cli.main(["migrate", "up"]) == 0
    assert "No new migrations to apply." in capsys.readouterr().out


def test_migrate_down_invalid_count(connected, capsys):
    assert cli.main(["migrate", "down", "many"]) == 1
    assert "Error" in capsys.readouterr().err


def test_history_sync(connected, capsys):
    connected[MIGRATIONS_COLLECTION].insert_one({"_id": "1600000000_old", "applied": 0})

    assert cli.main(["migrate", "history-sync"]) == 0
    assert "Removed 1 orphaned" in capsys.readouterr().out


def test_migrate_create(monkeypatch, tmp_path, capsys):
    monkeypatch.setattr(runner_module, "MIGRATIONS_DIR", tmp_path)

    assert cli.main(["migrate", "create", "add_goals"]) == 0
    created = list(tmp_path.glob("*_add_goals.py"))
    assert len(created) == 1


def test_migrate_create_requires_name(capsys):
    assert cli.main(["migrate", "create"]) == 2


def test_database_unavailable(monkeypatch, capsys):
    monkeypatch.setattr(database, "initialize_db", lambda uri=None, db_name=None: False)

    assert cli.main(["migrate", "up"]) == 1
    assert "MONGO_URI" in capsys.readouterr().err


def test_serve_runs_uvicorn(monkeypatch):
    calls = {}

    def fake_run(app, host, port, log_level):
        calls.update(app=app, host=host, port=port)

    monkeypatch.setattr("uvicorn.run", fake_run)

    assert cli.main(["serve", "--host", "127.0.0.1", "--port", "9000"]) == 0
    assert calls == {"app": "app.main:app", "host": "127.0.0.1", "port": 9000}


def test_migrate_collections(connected, monkeypatch, tmp_path, capsys):
    monkeypatch.setattr(runner_module, "MIGRATIONS_DIR", tmp_path)
    cli.main(["migrate", "up"])
    capsys.readouterr()

    assert cli.main(["migrate", "collections"]) == 0
    created = list(tmp_path.glob("*_collections_snapshot.py"))
    assert len(created) == 1
    assert str(created[0]) in capsys.readouterr().out
    text = created[0].read_text()
    assert "'name': 'habits'" in text
    assert "register(__name__, up, down)" in text


def test_migrate_collections_empty_database(connected, monkeypatch, tmp_path, capsys):
    monkeypatch.setattr(runner_module, "MIGRATIONS_DIR", tmp_path)

    assert cli.main(["migrate", "collections"]) == 1
    assert "No collections" in capsys.readouterr().err
    assert list(tmp_path.iterdir()) == []
