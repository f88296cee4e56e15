"""
CLI command tests.

Verifies the system, companies and backups command groups against the
in-memory app.
"""

import json

import pytest

from scrapyard.domain import CompanyStatus


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


class TestSystemCommands:

    def test_init_reports_counts(self, runner):
        result = runner.invoke(args=["system", "init"])
        assert result.exit_code == 0
        assert "plans: 3" in result.output
        assert "PASS Platform operator: root@platform.test" in result.output

    def test_reset_db(self, runner, store, company_a):
        result = runner.invoke(args=["system", "reset-db", "--yes"])
        assert result.exit_code == 0
        assert store.companies == []
        assert len(store.plans) == 3

    def test_lifecycle_check(self, runner, store, clock, company_a):
        result = runner.invoke(args=["system", "lifecycle-check"])
        assert "PASS No companies to block" in result.output

        clock.advance(days=16)
        result = runner.invoke(args=["system", "lifecycle-check"])
        assert f"BLOCKED {company_a['company'].id}" in result.output
        assert company_a["company"].status is CompanyStatus.BLOCKED


class TestCompanyCommands:

    def test_list_empty(self, runner):
        result = runner.invoke(args=["companies", "list"])
        assert "No companies found." in result.output

    def test_list(self, runner, company_a):
        result = runner.invoke(args=["companies", "list"])
        assert "Yard A" in result.output
        assert "alice@yard-a.test" in result.output

    def test_renew_keeps_session(self, runner, store, company_a, login):
        user = login("alice@yard-a.test")
        result = runner.invoke(args=[
            "companies", "renew", "--company-id", company_a["company"].id, "--days", "30",
        ])
        assert "PASS Yard A active until" in result.output
        assert store.current_user is user

    def test_renew_unknown_company(self, runner):
        result = runner.invoke(args=["companies", "renew", "--company-id", "nope", "--days", "30"])
        assert "FAIL Company not found." in result.output


class TestBackupCommands:

    def test_global_export(self, runner, tmp_path, company_a):
        out = tmp_path / "dump.json"
        result = runner.invoke(args=["backups", "export", "--out", str(out)])
        assert result.exit_code == 0
        assert "PASS Wrote" in result.output
        assert json.loads(out.read_text())["type"] == "global_system_dump"

    def test_company_export(self, runner, tmp_path, store, company_a):
        out = tmp_path / "yard.json"
        runner.invoke(args=["backups", "export", "--out", str(out), "--company-id", company_a["company"].id])
        payload = json.loads(out.read_text())
        assert payload["company"]["id"] == company_a["company"].id
        assert store.current_user is None

    def test_company_export_unknown(self, runner):
        result = runner.invoke(args=["backups", "export", "--company-id", "nope"])
        assert "FAIL No owner found" in result.output

    def test_auto_backup_once_per_day(self, runner, store):
        assert "PASS Backup" in runner.invoke(args=["backups", "auto"]).output
        assert "SKIP" in runner.invoke(args=["backups", "auto"]).output
        assert [log.company_id for log in store.backup_history] == ["SYSTEM"]
