"""
Tests for dependency listing: parsing cargo tree output and running cargo.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from cargo_scorecard.cargo_tree import (
    list_cargo_dependencies,
    load_dependency_file,
    parse_dependency_lines,
)
from cargo_scorecard.dependency import DependencyRef
from cargo_scorecard.error_handling import ListerError


def fake_process(stdout: bytes = b"", stderr: bytes = b"", returncode: int = 0):
    process = MagicMock()
    process.communicate = AsyncMock(return_value=(stdout, stderr))
    process.returncode = returncode
    return process


class TestParseDependencyLines:
    def test_parses_sorted_unique_pairs(self, sample_tree_output):
        deps = parse_dependency_lines(sample_tree_output)

        assert deps == [
            DependencyRef("anyhow", "v1.0.86"),
            DependencyRef("proc-macro2", "v1.0.86"),
            DependencyRef("quote", "v1.0.36"),
            DependencyRef("serde", "v1.0.0"),
        ]

    def test_drops_lines_without_exactly_two_tokens(self):
        text = "lonely\nserde v1.0.0\nwith extra tokens here\n   \n"
        assert parse_dependency_lines(text) == [DependencyRef("serde", "v1.0.0")]

    def test_keeps_distinct_versions_of_same_crate(self):
        text = "syn v2.0.0\nsyn v1.0.109\nsyn v2.0.0\n"
        assert parse_dependency_lines(text) == [
            DependencyRef("syn", "v1.0.109"),
            DependencyRef("syn", "v2.0.0"),
        ]

    def test_tolerates_surrounding_whitespace_and_tabs(self):
        assert parse_dependency_lines("  serde\tv1.0.0  \r\n") == [
            DependencyRef("serde", "v1.0.0")
        ]

    def test_empty_input(self):
        assert parse_dependency_lines("") == []


class TestLoadDependencyFile:
    def test_reads_file(self, tmp_path):
        path = tmp_path / "deps.txt"
        path.write_text("serde 1.0.0\nleft-pad-clone 0.1.0\n")

        assert load_dependency_file(str(path)) == [
            DependencyRef("left-pad-clone", "0.1.0"),
            DependencyRef("serde", "1.0.0"),
        ]

    def test_missing_file(self, tmp_path):
        with pytest.raises(ListerError, match="Could not read"):
            load_dependency_file(str(tmp_path / "nope.txt"))

    def test_reads_stdin(self, monkeypatch):
        import io

        monkeypatch.setattr("sys.stdin", io.StringIO("anyhow v1.0.86\n"))
        assert load_dependency_file("-") == [DependencyRef("anyhow", "v1.0.86")]


class TestListCargoDependencies:
    @pytest.mark.asyncio
    async def test_runs_cargo_tree(self, sample_tree_output):
        process = fake_process(stdout=sample_tree_output.encode())
        with patch(
            "asyncio.create_subprocess_exec", AsyncMock(return_value=process)
        ) as exec_mock:
            deps = await list_cargo_dependencies()

        assert exec_mock.call_args.args == ("cargo", "tree", "--prefix", "none")
        assert [d.name for d in deps] == ["anyhow", "proc-macro2", "quote", "serde"]

    @pytest.mark.asyncio
    async def test_passes_manifest_path_and_command(self):
        process = fake_process(stdout=b"serde v1.0.0\n")
        with patch(
            "asyncio.create_subprocess_exec", AsyncMock(return_value=process)
        ) as exec_mock:
            await list_cargo_dependencies(
                manifest_path="demo/Cargo.toml", cargo_command="/opt/cargo"
            )

        assert exec_mock.call_args.args == (
            "/opt/cargo",
            "tree",
            "--prefix",
            "none",
            "--manifest-path",
            "demo/Cargo.toml",
        )

    @pytest.mark.asyncio
    async def test_nonzero_exit_raises(self):
        process = fake_process(
            stderr=b"error: could not find `Cargo.toml` in `/tmp` or any parent directory\n",
            returncode=101,
        )
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
            with pytest.raises(ListerError, match="exit code 101.*Cargo.toml"):
                await list_cargo_dependencies()

    @pytest.mark.asyncio
    async def test_missing_cargo_raises(self):
        with patch(
            "asyncio.create_subprocess_exec",
            AsyncMock(side_effect=FileNotFoundError("cargo")),
        ):
            with pytest.raises(ListerError, match="Failed to run cargo tree"):
                await list_cargo_dependencies()
