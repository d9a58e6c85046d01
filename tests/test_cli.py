"""
Unit tests for the command line interface.

The async runners are patched so that no network, browser or database is
touched; these tests cover option parsing, output and exit codes.
"""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
import yaml
from click.testing import CliRunner

from site_monitor.main import cli
from site_monitor.models import MonitoringReport, MonitoringResult, MonitoringStatus, ReportStatus


NOW = datetime(2026, 10, 17, 12, 0, 0, tzinfo=timezone.utc)

MANIFEST = {
    'monitoring': {'report_recipient': 'ops@example.com'},
    'websites': ['https://example.com/', {'url': 'https://old.example.com/', 'active': False}],
}


def up_result(url="https://example.com/"):
    return MonitoringResult(
        website_url=url,
        checked_at=NOW,
        status=MonitoringStatus.UP,
        status_code=200,
        response_time_ms=120,
    )


def stored_report(status=ReportStatus.SENT, error_message=None):
    return MonitoringReport(
        id=7,
        recipient="ops@example.com",
        subject="Monitoring Report [All Clear] – 2026-10-17 12:00",
        summary={"down": [], "expiring": [], "content_changed": [], "broken_assets": []},
        status=status,
        error_message=error_message,
        created_at=NOW,
    )


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch('site_monitor.main.setup_logging'):
        yield


class TestCLI:
    """Tests for the site-monitor command group."""

    def setup_method(self):
        self.runner = CliRunner()

    def write_manifest(self, data=None, name="websites.yaml"):
        with open(name, "w") as f:
            yaml.safe_dump(data if data is not None else MANIFEST, f)
        return name

    def test_help_lists_commands(self):
        result = self.runner.invoke(cli, ['--help'])

        assert result.exit_code == 0
        for command in ('check', 'report', 'resend', 'reports'):
            assert command in result.output

    def test_version(self):
        result = self.runner.invoke(cli, ['--version'])

        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_check_without_manifest(self):
        with self.runner.isolated_filesystem():
            result = self.runner.invoke(cli, ['check'])

        assert result.exit_code != 0
        assert "No manifest file found" in result.output

    def test_check_monitors_active_websites(self):
        with self.runner.isolated_filesystem():
            self.write_manifest()
            with patch('site_monitor.main.run_check', new_callable=AsyncMock) as mock_run:
                mock_run.return_value = ([up_result()], None)
                result = self.runner.invoke(cli, ['check'])

        assert result.exit_code == 0, result.output
        manifest, _, send_report, screenshots = mock_run.call_args.args
        assert [w.url for w in manifest.active_websites] == ["https://example.com/"]
        assert send_report is False
        assert screenshots is False
        assert "1 website(s) monitored" in result.output

    def test_check_ad_hoc_url(self):
        with self.runner.isolated_filesystem():
            with patch('site_monitor.main.run_check', new_callable=AsyncMock) as mock_run:
                mock_run.return_value = ([up_result("https://adhoc.example.com/")], None)
                result = self.runner.invoke(cli, ['check', '-u', 'https://adhoc.example.com/'])

        assert result.exit_code == 0, result.output
        manifest = mock_run.call_args.args[0]
        assert [w.url for w in manifest.websites] == ["https://adhoc.example.com/"]

    def test_check_screenshots_flag_overrides_settings(self):
        with self.runner.isolated_filesystem():
            self.write_manifest()
            with patch('site_monitor.main.run_check', new_callable=AsyncMock) as mock_run:
                mock_run.return_value = ([up_result()], None)
                self.runner.invoke(cli, ['check', '--screenshots'])

        assert mock_run.call_args.args[3] is True

    def test_check_exports_json(self):
        with self.runner.isolated_filesystem():
            self.write_manifest()
            with patch('site_monitor.main.run_check', new_callable=AsyncMock) as mock_run:
                mock_run.return_value = ([up_result()], None)
                result = self.runner.invoke(cli, ['check', '-o', 'results.json'])

            with open('results.json') as f:
                exported = json.load(f)

        assert result.exit_code == 0, result.output
        assert exported['total_websites'] == 1
        assert exported['results'][0]['website_url'] == "https://example.com/"

    def test_check_rejects_unknown_output_format(self):
        with self.runner.isolated_filesystem():
            self.write_manifest()
            result = self.runner.invoke(cli, ['check', '-o', 'results.txt'])

        assert result.exit_code != 0
        assert "Unsupported output format" in result.output

    def test_check_with_report_sent(self):
        with self.runner.isolated_filesystem():
            self.write_manifest()
            with patch('site_monitor.main.run_check', new_callable=AsyncMock) as mock_run:
                mock_run.return_value = ([up_result()], stored_report())
                result = self.runner.invoke(cli, ['check', '--report'])

        assert result.exit_code == 0, result.output
        assert mock_run.call_args.args[2] is True
        assert "Report 7 sent" in result.output

    def test_check_with_failed_report_exits_nonzero(self):
        with self.runner.isolated_filesystem():
            self.write_manifest()
            with patch('site_monitor.main.run_check', new_callable=AsyncMock) as mock_run:
                mock_run.return_value = (
                    [up_result()],
                    stored_report(status=ReportStatus.FAILED, error_message="SMTP is not configured"),
                )
                result = self.runner.invoke(cli, ['check', '--report'])

        assert result.exit_code == 1
        assert "could not be sent" in result.output

    def test_check_invalid_manifest(self):
        with self.runner.isolated_filesystem():
            self.write_manifest({'websites': ['ftp://example.com']})
            result = self.runner.invoke(cli, ['check'])

        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_check_without_active_websites(self):
        with self.runner.isolated_filesystem():
            self.write_manifest({'websites': [{'url': 'https://example.com/', 'active': False}]})
            with patch('site_monitor.main.run_check', new_callable=AsyncMock) as mock_run:
                result = self.runner.invoke(cli, ['check'])

        assert result.exit_code == 0
        assert "No active websites to monitor" in result.output
        mock_run.assert_not_called()

    def test_report_command(self):
        with self.runner.isolated_filesystem():
            self.write_manifest()
            with patch('site_monitor.main.run_report', new_callable=AsyncMock) as mock_run:
                mock_run.return_value = (2, stored_report())
                result = self.runner.invoke(cli, ['report', '--hours', '6'])

        assert result.exit_code == 0, result.output
        settings, since = mock_run.call_args.args
        assert settings.report_recipient == "ops@example.com"
        assert since.tzinfo is not None
        assert "Report 7 sent" in result.output

    def test_report_command_without_results(self):
        with self.runner.isolated_filesystem():
            self.write_manifest()
            with patch('site_monitor.main.run_report', new_callable=AsyncMock) as mock_run:
                mock_run.return_value = (0, None)
                result = self.runner.invoke(cli, ['report'])

        assert result.exit_code == 0
        assert "No results stored" in result.output
        assert "report skipped" in result.output

    def test_resend_command(self):
        with self.runner.isolated_filesystem():
            self.write_manifest()
            with patch('site_monitor.main.run_resend', new_callable=AsyncMock) as mock_run:
                mock_run.return_value = stored_report()
                result = self.runner.invoke(cli, ['resend', '7'])

        assert result.exit_code == 0, result.output
        assert mock_run.call_args.args[1] == 7
        assert "Report 7 sent" in result.output

    def test_resend_unknown_report(self):
        with self.runner.isolated_filesystem():
            self.write_manifest()
            with patch('site_monitor.main.run_resend', new_callable=AsyncMock) as mock_run:
                mock_run.side_effect = ValueError("Report 99 not found")
                result = self.runner.invoke(cli, ['resend', '99'])

        assert result.exit_code == 1
        assert "Report 99 not found" in result.output

    def test_resend_requires_integer_id(self):
        result = self.runner.invoke(cli, ['resend', 'latest'])

        assert result.exit_code == 2

    def test_reports_command(self):
        with self.runner.isolated_filesystem():
            self.write_manifest()
            with patch('site_monitor.main.run_list_reports', new_callable=AsyncMock) as mock_run:
                mock_run.return_value = [stored_report(), stored_report(status=ReportStatus.FAILED)]
                result = self.runner.invoke(cli, ['reports', '-n', '5'])

        assert result.exit_code == 0, result.output
        assert mock_run.call_args.args[1] == 5
        assert "Monitoring Reports" in result.output

    def test_reports_command_empty(self):
        with self.runner.isolated_filesystem():
            self.write_manifest()
            with patch('site_monitor.main.run_list_reports', new_callable=AsyncMock) as mock_run:
                mock_run.return_value = []
                result = self.runner.invoke(cli, ['reports'])

        assert result.exit_code == 0
        assert "No reports stored yet" in result.output
