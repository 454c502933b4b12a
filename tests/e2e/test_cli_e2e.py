"""End-to-end tests for the nixdeploy CLI.

Runs the CLI as a subprocess so argument parsing, config loading,
composition root wiring and error reporting are exercised together.
"""

import os
import subprocess
import sys

import pytest


def _run_cli_subprocess(*args: str, env_extra: dict | None = None, cwd=None):
    """Run the CLI as a subprocess and return CompletedProcess."""
    env = {**os.environ, **(env_extra or {})}
    return subprocess.run(
        [sys.executable, "-m", "nixdeploy.presentation.cli.cli", *args],
        capture_output=True,
        text=True,
        env=env,
        cwd=cwd,
        timeout=60,
    )


class TestCLISubprocess:
    def test_help(self):
        result = _run_cli_subprocess("--help")
        assert result.returncode == 0
        assert "os" in result.stdout
        assert "home" in result.stdout

    def test_os_help_lists_actions(self):
        result = _run_cli_subprocess("os", "--help")
        assert result.returncode == 0
        for action in ("switch", "boot", "test", "build-vm", "rollback", "repl", "info"):
            assert action in result.stdout

    def test_unknown_variant(self):
        result = _run_cli_subprocess("home", "boot")
        assert result.returncode == 2

    def test_info_on_missing_profile(self, tmp_path):
        result = _run_cli_subprocess("os", "info", "--profile", str(tmp_path / "system"))
        assert result.returncode == 1
        assert "[-] No profile" in result.stdout

    @pytest.mark.skipif(not hasattr(os, "geteuid") or os.geteuid() != 0,
                        reason="root check only triggers as root")
    def test_root_refused(self, tmp_path):
        result = _run_cli_subprocess("os", "rollback", cwd=tmp_path)
        assert result.returncode == 1
        assert "Don't run nixdeploy as root" in result.stdout
