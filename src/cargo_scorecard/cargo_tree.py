"""
Dependency listing via ``cargo tree``.

Produces the sorted, de-duplicated ``(name, version)`` inventory of a cargo
project, either by running cargo or by reading previously captured output.
"""

import asyncio
import subprocess
import sys
from pathlib import Path
from typing import List, Optional

from .dependency import DependencyRef
from .error_handling import ErrorCategory, ListerError, get_error_handler


def parse_dependency_lines(text: str) -> List[DependencyRef]:
    """
    Parse ``name version`` lines into dependency references.

    Blank lines and lines that do not split into exactly two tokens (path
    dependencies, ``(*)`` repeats, feature annotations) are discarded.
    Identical pairs are collapsed and the result is sorted.

    Args:
        text: Output of ``cargo tree --prefix none`` or an equivalent list

    Returns:
        List[DependencyRef]: Sorted unique dependencies
    """
    pairs = set()
    for line in text.splitlines():
        parts = line.strip().split()
        if len(parts) == 2:
            pairs.add((parts[0], parts[1]))

    return [DependencyRef(name=name, version=version) for name, version in sorted(pairs)]


def load_dependency_file(path: str) -> List[DependencyRef]:
    """Read a dependency list from a file, or from stdin when path is ``-``."""
    if path == "-":
        return parse_dependency_lines(sys.stdin.read())

    try:
        text = Path(path).read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise ListerError(f"Could not read dependency list {path}: {e}") from e
    return parse_dependency_lines(text)


async def list_cargo_dependencies(
    manifest_path: Optional[str] = None,
    cargo_command: str = "cargo",
    timeout_seconds: float = 120.0,
) -> List[DependencyRef]:
    """
    Run ``cargo tree --prefix none`` and parse its output.

    Args:
        manifest_path: Optional path to Cargo.toml
        cargo_command: cargo executable to run
        timeout_seconds: Upper bound for the cargo invocation

    Returns:
        List[DependencyRef]: Sorted unique dependencies

    Raises:
        ListerError: If cargo cannot be run, times out or fails
    """
    command = [cargo_command, "tree", "--prefix", "none"]
    if manifest_path:
        command.extend(["--manifest-path", str(manifest_path)])

    error_handler = get_error_handler()

    try:
        process = await asyncio.create_subprocess_exec(
            *command,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except OSError as e:
        error_handler.error(
            ErrorCategory.LISTER,
            "Could not start cargo",
            "cargo_tree",
            "list_cargo_dependencies",
            exception=e,
            details={"command": cargo_command},
        )
        raise ListerError(f"Failed to run cargo tree: {e}") from e

    try:
        stdout_data, stderr_data = await asyncio.wait_for(
            process.communicate(), timeout=timeout_seconds
        )
    except asyncio.TimeoutError as e:
        process.kill()
        await process.wait()
        error_handler.error(
            ErrorCategory.LISTER,
            f"cargo tree timed out after {timeout_seconds}s",
            "cargo_tree",
            "list_cargo_dependencies",
        )
        raise ListerError(f"cargo tree timed out after {timeout_seconds}s") from e

    if process.returncode != 0:
        stderr = stderr_data.decode("utf-8", errors="replace").strip()
        error_handler.error(
            ErrorCategory.LISTER,
            "cargo tree failed",
            "cargo_tree",
            "list_cargo_dependencies",
            details={"returncode": process.returncode},
        )
        message = f"cargo tree failed with exit code {process.returncode}"
        if stderr:
            message += f": {stderr.splitlines()[-1]}"
        raise ListerError(message)

    return parse_dependency_lines(stdout_data.decode("utf-8", errors="replace"))
