"""
CLI interface tests for cargo-scorecard.
Network and cargo are patched out; the enrichment core is covered elsewhere.
"""

import json
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from cargo_scorecard.enrichment import EnrichmentReport, EnrichmentResult
from cargo_scorecard.error_handling import HttpStatusError, ListerError, log_lookup_error
from cargo_scorecard.main import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def deps_file(tmp_path):
    path = tmp_path / "deps.txt"
    path.write_text("serde 1.0.0\nleft-pad-clone 0.1.0\n")
    return path


@pytest.fixture
def canned_report():
    return EnrichmentReport(
        results=[
            EnrichmentResult("left-pad-clone", "0.1.0", None, None),
            EnrichmentResult("serde", "1.0.0", "https://github.com/serde-rs/serde", 9.2),
        ],
        duration_ms=42,
    )


class TestCLIBasics:
    def test_cli_help(self, runner):
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "cargo-scorecard" in result.output
        assert "scan" in result.output

    def test_cli_version(self, runner):
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "cargo-scorecard version 0.1.0" in result.output

    def test_no_subcommand_prints_help(self, runner):
        result = runner.invoke(cli, [])

        assert result.exit_code == 0
        assert "config" in result.output


class TestScanCommand:
    @patch("cargo_scorecard.main.enrich_dependencies", new_callable=AsyncMock)
    def test_scan_input_file_markdown(self, mock_enrich, runner, deps_file, canned_report):
        mock_enrich.return_value = canned_report

        result = runner.invoke(cli, ["scan", "--input", str(deps_file), "-f", "markdown", "-q"])

        assert result.exit_code == 0
        assert "| Crate Name | Version | Repository URL | Security Score |" in result.output
        assert "| serde | 1.0.0 | https://github.com/serde-rs/serde | 9.2 |" in result.output
        assert (
            "| left-pad-clone | 0.1.0 | No repository information | Not available |"
            in result.output
        )

        dependencies = mock_enrich.call_args.args[1]
        assert [(d.name, d.version) for d in dependencies] == [
            ("left-pad-clone", "0.1.0"),
            ("serde", "1.0.0"),
        ]

    @patch("cargo_scorecard.main.enrich_dependencies", new_callable=AsyncMock)
    def test_scan_json_to_file(self, mock_enrich, runner, deps_file, canned_report, tmp_path):
        mock_enrich.return_value = canned_report
        output_file = tmp_path / "scorecard.json"

        result = runner.invoke(
            cli,
            ["scan", "-i", str(deps_file), "-f", "json", "-o", str(output_file)],
        )

        assert result.exit_code == 0
        data = json.loads(output_file.read_text())
        assert data["total_dependencies"] == 2
        assert data["summary"]["scored"] == 1
        assert [r["name"] for r in data["results"]] == ["left-pad-clone", "serde"]

    @patch("cargo_scorecard.main.enrich_dependencies", new_callable=AsyncMock)
    def test_scan_console_output(self, mock_enrich, runner, deps_file, canned_report):
        mock_enrich.return_value = canned_report

        result = runner.invoke(cli, ["scan", "-i", str(deps_file)])

        assert result.exit_code == 0
        assert "Cargo Scorecard" in result.output
        assert "serde" in result.output

    @patch("cargo_scorecard.main.enrich_dependencies", new_callable=AsyncMock)
    def test_verbose_prints_error_summary(self, mock_enrich, runner, deps_file, canned_report):
        async def enrich(config, dependencies):
            log_lookup_error(
                HttpStatusError("left-pad-clone", 404),
                "resolve",
                "left-pad-clone",
                "enrichment",
                "_resolve",
            )
            return canned_report

        mock_enrich.side_effect = enrich

        result = runner.invoke(cli, ["scan", "-i", str(deps_file), "-f", "markdown", "-v"])

        assert result.exit_code == 0
        assert "Errors by category: network_warning=1" in result.output

    def test_console_format_rejects_output_file(self, runner, deps_file, tmp_path):
        result = runner.invoke(
            cli, ["scan", "-i", str(deps_file), "-o", str(tmp_path / "out.txt")]
        )

        assert result.exit_code == 2
        assert "markdown or JSON" in result.output

    def test_invalid_output_format(self, runner, deps_file):
        result = runner.invoke(cli, ["scan", "-i", str(deps_file), "-f", "xml"])

        assert result.exit_code == 2

    @patch("cargo_scorecard.main.enrich_dependencies", new_callable=AsyncMock)
    @patch("cargo_scorecard.main.list_cargo_dependencies", new_callable=AsyncMock)
    def test_lister_failure_exits_nonzero(self, mock_list, mock_enrich, runner):
        mock_list.side_effect = ListerError(
            "cargo tree failed with exit code 101: error: could not find `Cargo.toml`"
        )

        result = runner.invoke(cli, ["scan", "-q"])

        assert result.exit_code == 1
        assert "exit code 101" in result.output
        mock_enrich.assert_not_called()

    def test_missing_input_file_exits_nonzero(self, runner, tmp_path):
        result = runner.invoke(cli, ["scan", "-i", str(tmp_path / "missing.txt")])

        assert result.exit_code == 1
        assert "Could not read" in result.output

    @patch("cargo_scorecard.main.enrich_dependencies", new_callable=AsyncMock)
    def test_empty_dependency_list(self, mock_enrich, runner, tmp_path):
        empty = tmp_path / "empty.txt"
        empty.write_text("\n")

        result = runner.invoke(cli, ["scan", "-i", str(empty), "-f", "json"])

        assert result.exit_code == 0
        assert "No dependencies found" in result.output
        mock_enrich.assert_not_called()

    @patch("cargo_scorecard.main.enrich_dependencies", new_callable=AsyncMock)
    @patch("cargo_scorecard.main.list_cargo_dependencies", new_callable=AsyncMock)
    def test_manifest_path_passed_to_lister(
        self, mock_list, mock_enrich, runner, canned_report, tmp_path
    ):
        manifest = tmp_path / "Cargo.toml"
        manifest.write_text("[package]\nname = \"demo\"\n")
        mock_list.return_value = []

        result = runner.invoke(cli, ["scan", "--manifest-path", str(manifest), "-q"])

        assert result.exit_code == 0
        assert mock_list.call_args.kwargs["manifest_path"] == str(manifest)
        assert mock_list.call_args.kwargs["cargo_command"] == "cargo"


class TestConfigCommands:
    def test_config_show(self, runner):
        result = runner.invoke(cli, ["config", "show"])

        assert result.exit_code == 0
        assert "registry_url" in result.output
        assert "https://crates.io/api/v1/crates" in result.output

    def test_config_init_writes_defaults(self, runner, tmp_path):
        result = runner.invoke(cli, ["config", "init"])

        assert result.exit_code == 0
        data = json.loads((tmp_path / ".cargo-scorecard.json").read_text())
        assert data["network"]["user_agent"] == "cargo-scorecard/0.1.0"
        assert data["output"]["output_format"] == "console"

    def test_config_init_refuses_overwrite(self, runner, tmp_path):
        target = tmp_path / ".cargo-scorecard.json"
        target.write_text("{}")

        result = runner.invoke(cli, ["config", "init"])
        assert result.exit_code == 1
        assert "already exists" in result.output
        assert target.read_text() == "{}"

        result = runner.invoke(cli, ["config", "init", "--force"])
        assert result.exit_code == 0
        assert "network" in json.loads(target.read_text())
