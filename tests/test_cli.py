"""Tests for the ``fbms`` command line."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from fbms.backend.cli.main import main


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "fbms.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "database": {"url": f"sqlite:///{tmp_path / 'fbms.db'}"},
                "backup": {"directory": str(tmp_path / "backups"), "keep": 2},
                "output_dir": str(tmp_path / "outputs"),
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def run(config_file: Path):
    runner = CliRunner()

    def invoke(*args: str, **kwargs):
        return runner.invoke(main, ["--config", str(config_file), *args], **kwargs)

    return invoke


class TestInitDb:
    def test_creates_and_seeds(self, run, tmp_path) -> None:
        result = run("init-db")
        assert result.exit_code == 0, result.output
        assert (tmp_path / "fbms.db").exists()
        assert "Database ready" in result.output

    def test_second_run_adds_nothing(self, run) -> None:
        run("init-db")
        result = run("init-db", "--no-sample-data")
        assert result.exit_code == 0, result.output

    def test_missing_config_file(self, tmp_path) -> None:
        result = CliRunner().invoke(main, ["--config", str(tmp_path / "missing.yaml"), "init-db"])
        assert result.exit_code == 1
        assert "Configuration error" in result.output


class TestBackupCommands:
    def test_create_list_verify(self, run, tmp_path) -> None:
        run("init-db")
        assert run("backup", "create", "--label", "nightly").exit_code == 0

        files = sorted((tmp_path / "backups").glob("*.json"))
        assert len(files) == 1
        assert files[0].name.endswith("-nightly.json")

        assert run("backup", "list").exit_code == 0
        result = run("backup", "verify", files[0].name)
        assert result.exit_code == 0, result.output

    def test_verify_missing_backup(self, run) -> None:
        run("init-db")
        result = run("backup", "verify", "fbms-backup-none.json")
        assert result.exit_code == 1
        assert "Verify failed" in result.output

    def test_restore_needs_confirmation(self, run, tmp_path) -> None:
        run("init-db")
        run("backup", "create")
        (name,) = [p.name for p in (tmp_path / "backups").glob("*.json")]

        aborted = run("backup", "restore", name, input="n\n")
        assert aborted.exit_code == 1

        restored = run("backup", "restore", name, "--yes")
        assert restored.exit_code == 0, restored.output
        assert "Restored" in restored.output

    def test_prune_uses_configured_keep(self, run, tmp_path) -> None:
        run("init-db")
        for _ in range(4):
            run("backup", "create")
        result = run("backup", "prune")
        assert result.exit_code == 0, result.output
        assert len(list((tmp_path / "backups").glob("*.json"))) == 2


class TestReportCommands:
    def test_inventory_export(self, run, tmp_path) -> None:
        run("init-db")
        result = run("report", "inventory", "--export", "csv")
        assert result.exit_code == 0, result.output
        assert list((tmp_path / "outputs" / "reports").glob("*.csv"))

    def test_sales_report_without_sales(self, run) -> None:
        run("init-db")
        result = run("report", "sales", "--start", "2024-01-01", "--end", "2024-01-31")
        assert result.exit_code == 0, result.output

    def test_vat_rejects_month_and_quarter(self, run) -> None:
        run("init-db")
        result = run("report", "vat", "--year", "2024", "--month", "1", "--quarter", "1")
        assert result.exit_code == 1
        assert "Report failed" in result.output


def test_check_deps_passes() -> None:
    result = CliRunner().invoke(main, ["check-deps"])
    assert result.exit_code == 0, result.output
