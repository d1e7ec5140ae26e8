"""
Tests for the typer commands in migrations/supabase_to_better_auth/cli.py

Covers:
- migrate: options forwarded to migrate_users()
- migrate --resume: cursor read from the checkpoint file
- Exit code 1 on failure or missing checkpoint
"""

import pytest
from typer.testing import CliRunner

from migrations.supabase_to_better_auth import cli
from migrations.supabase_to_better_auth.state import CheckpointStore, MigrationStateManager

runner = CliRunner()


@pytest.fixture
def migrate_calls(monkeypatch):
    calls = []

    async def fake_migrate_users(settings, state_manager, resume_from_id=None, show_progress=False):
        calls.append({"settings": settings, "resume_from_id": resume_from_id})
        state_manager.start(1, settings.batch_size)
        state_manager.complete()
        return state_manager.get_state()

    monkeypatch.setattr(cli, "migrate_users", fake_migrate_users)
    return calls


class TestMigrateCommand:
    def test_options_are_forwarded(self, migrate_calls):
        result = runner.invoke(
            cli.app,
            ["migrate", "--source-uri", "postgresql://src/db", "--batch-size", "250", "--resume-from-id", "user-9"],
        )

        assert result.exit_code == 0, result.output
        assert "Migration completed" in result.output
        [call] = migrate_calls
        assert call["resume_from_id"] == "user-9"
        assert call["settings"].batch_size == 250
        assert call["settings"].source_postgres_uri == "postgresql://src/db"

    def test_resume_from_checkpoint(self, tmp_path, migrate_calls):
        path = tmp_path / "migration_state.json"
        previous = MigrationStateManager()
        previous.start(10, 5)
        previous.update_progress(5, 5, 0, 0, "user-00005")
        CheckpointStore(path).save(previous.get_state())

        result = runner.invoke(cli.app, ["migrate", "--resume", "--checkpoint-path", str(path)])

        assert result.exit_code == 0, result.output
        assert migrate_calls[0]["resume_from_id"] == "user-00005"

    def test_resume_with_empty_checkpoint_starts_over(self, tmp_path, migrate_calls):
        result = runner.invoke(cli.app, ["migrate", "-r", "--checkpoint-path", str(tmp_path / "missing.json")])

        assert result.exit_code == 0, result.output
        assert migrate_calls[0]["resume_from_id"] is None

    def test_resume_requires_checkpoint_path(self, migrate_calls, monkeypatch):
        monkeypatch.delenv("CHECKPOINT_PATH", raising=False)

        result = runner.invoke(cli.app, ["migrate", "--resume"])

        assert result.exit_code == 1
        assert migrate_calls == []

    def test_failure_exits_with_code_1(self, monkeypatch):
        async def failing_migrate_users(settings, state_manager, resume_from_id=None, show_progress=False):
            state_manager.start(10, 5)
            state_manager.fail()
            raise ConnectionError("could not connect to server")

        monkeypatch.setattr(cli, "migrate_users", failing_migrate_users)

        result = runner.invoke(cli.app, ["migrate"])

        assert result.exit_code == 1
