"""Integration tests for a Home-Manager rebuild.

Wires the real NixAdapter, NvdDiffAdapter and SubprocessRunner; `nix` and
`nvd` are shell scripts placed first on PATH.
"""

import os
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from nixdeploy.application.platforms import (
    HomeManagerPlatform,
    RebuildRequest,
    RebuildVariant,
)
from nixdeploy.application.use_cases.rebuild_configuration import RebuildConfiguration
from nixdeploy.domain.entities.deployment import DeploymentStatus
from nixdeploy.domain.errors import BuildError
from nixdeploy.domain.value_objects.installable import FlakeInstallable
from nixdeploy.infrastructure.adapters.nix_adapter import NixAdapter
from nixdeploy.infrastructure.adapters.nvd_adapter import NvdDiffAdapter
from nixdeploy.infrastructure.adapters.subprocess_runner import SubprocessRunner
from nixdeploy.infrastructure.config import HomeConfig, HostContext

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell")

FAKE_NIX = """#!/bin/sh
echo "$@" >> {log}
case "$1" in
  eval)
    case "$*" in
      *'"me"'*) echo true ;;
      *) echo false ;;
    esac
    ;;
  build)
    {fail}
    while [ $# -gt 0 ]; do
      if [ "$1" = "--out-link" ]; then shift; ln -s {store} "$1"; fi
      shift
    done
    ;;
esac
"""


@pytest.fixture
def env(tmp_path):
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    home = tmp_path / "home"
    home.mkdir()
    store = tmp_path / "store" / "hm-generation"
    store.mkdir(parents=True)
    activate = store / "activate"
    activate.write_text(
        f"#!/bin/sh\necho \"$HOME_MANAGER_BACKUP_EXT\" > {tmp_path / 'activated'}\n"
    )
    activate.chmod(0o755)
    nvd = bin_dir / "nvd"
    nvd.write_text(f"#!/bin/sh\necho \"$@\" > {tmp_path / 'diffed'}\n")
    nvd.chmod(0o755)
    return tmp_path, bin_dir, home, store


def write_nix(tmp_path, bin_dir, store, fail=False):
    nix = bin_dir / "nix"
    nix.write_text(FAKE_NIX.format(
        log=tmp_path / "nix.log", store=store, fail="exit 1" if fail else ":",
    ))
    nix.chmod(0o755)


def make_use_case(bin_dir, home):
    environ = {"PATH": f"{bin_dir}:{os.environ.get('PATH', '/usr/bin:/bin')}"}
    context = HostContext(user="me", home=str(home), hostname="laptop", uid=1000,
                          environ=environ)
    runner = SubprocessRunner(environ, remote_shell=MagicMock())
    confirmation = AsyncMock()
    return RebuildConfiguration(
        NixAdapter(runner, context, use_nom=False),
        NvdDiffAdapter(runner),
        runner,
        confirmation,
        context,
    )


class TestHomeManagerRebuild:
    @pytest.mark.asyncio
    async def test_switch(self, env):
        tmp_path, bin_dir, home, store = env
        write_nix(tmp_path, bin_dir, store)
        baseline = home / ".local/state/nix/profiles/home-manager"
        baseline.parent.mkdir(parents=True)
        baseline.symlink_to(store)

        deployment = await make_use_case(bin_dir, home).execute(
            HomeManagerPlatform(HomeConfig(backup_extension="bak")),
            RebuildRequest(installable=FlakeInstallable("/cfg"), variant=RebuildVariant.SWITCH),
        )

        assert deployment.status == DeploymentStatus.COMPLETED
        log = (tmp_path / "nix.log").read_text().splitlines()
        assert log[0].startswith("eval --apply")
        assert log[0].endswith("/cfg#homeConfigurations")
        assert any(
            line.startswith("build /cfg#homeConfigurations.me.config.home.activationPackage")
            for line in log
        )
        assert (tmp_path / "diffed").read_text().startswith(f"diff {baseline}")
        assert (tmp_path / "activated").read_text() == "bak\n"

    @pytest.mark.asyncio
    async def test_build_does_not_activate(self, env):
        tmp_path, bin_dir, home, store = env
        write_nix(tmp_path, bin_dir, store)

        await make_use_case(bin_dir, home).execute(
            HomeManagerPlatform(HomeConfig()),
            RebuildRequest(
                installable=FlakeInstallable("/cfg"), variant=RebuildVariant.BUILD, ask=True
            ),
        )

        assert not (tmp_path / "activated").exists()

    @pytest.mark.asyncio
    async def test_build_failure(self, env):
        tmp_path, bin_dir, home, store = env
        write_nix(tmp_path, bin_dir, store, fail=True)

        with pytest.raises(BuildError):
            await make_use_case(bin_dir, home).execute(
                HomeManagerPlatform(HomeConfig()),
                RebuildRequest(installable=FlakeInstallable("/cfg"), variant=RebuildVariant.SWITCH),
            )

        assert not (tmp_path / "activated").exists()
