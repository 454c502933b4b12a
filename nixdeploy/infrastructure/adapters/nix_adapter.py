"""
Nix Adapter

Architectural Intent:
- Infrastructure adapter implementing NixPort on top of the `nix` CLI
- Every invocation goes through the CommandRunnerPort so elevation, remote
  execution and dry runs behave the same everywhere
- Builds can be piped through `nom --json` for readable progress
"""

from __future__ import annotations
import logging
from pathlib import Path
from typing import Optional, Sequence

from nixdeploy.domain.errors import BuildError, CommandFailedError
from nixdeploy.domain.ports.command_runner_port import CommandRunnerPort
from nixdeploy.domain.ports.nix_port import NixPort
from nixdeploy.domain.value_objects.command import Command
from nixdeploy.domain.value_objects.installable import Installable
from nixdeploy.domain.value_objects.remote_host import RemoteHost
from nixdeploy.infrastructure.config import HostContext

logger = logging.getLogger(__name__)


class NixAdapter(NixPort):
    def __init__(
        self,
        runner: CommandRunnerPort,
        context: HostContext,
        use_nom: bool = True,
    ):
        self.runner = runner
        self.context = context
        self.use_nom = use_nom

    def _nix(self, *args: object) -> Command:
        return Command.of("nix", args).with_nix_env(
            self.context.home, self.context.user, self.context.environ
        )

    async def build(
        self,
        installable: Installable,
        out_link: Path,
        extra_args: Sequence[str] = (),
        builder: Optional[RemoteHost] = None,
        message: Optional[str] = None,
    ) -> None:
        cmd = self._nix("build", *installable.to_build_args())
        if builder is not None:
            cmd = cmd.with_args("--builders", f"{builder.store_uri} - - - 100")
        cmd = cmd.with_args("--out-link", out_link, *extra_args)
        if message:
            cmd = cmd.with_message(message)

        try:
            if self.use_nom:
                head = cmd.with_args("--log-format", "internal-json", "--verbose")
                await self.runner.run_pipeline(head, Command.of("nom", ["--json"]))
            else:
                await self.runner.run(cmd)
        except CommandFailedError as e:
            raise BuildError(e.command, e.exit_status, message or "Build failed") from e

    async def has_attribute(
        self, installable: Installable, name: str, extra_args: Sequence[str] = ()
    ) -> bool:
        cmd = self._nix(
            "eval", *extra_args, "--apply", f'x: x ? "{name}"', *installable.to_build_args()
        )
        try:
            output = await self.runner.capture(cmd)
        except CommandFailedError as e:
            logger.debug("Attribute probe for %s failed: %s", name, e)
            return False
        return output is not None and output.strip() == "true"

    async def set_profile(
        self,
        profile: Path,
        store_path: Path,
        elevate: bool,
        host: Optional[RemoteHost] = None,
    ) -> None:
        cmd = (
            self._nix("build", "--no-link", "--profile", profile, store_path)
            .elevated(elevate)
            .on_host(host)
            .with_message(f"Setting profile {profile}")
        )
        await self.runner.run(cmd)

    async def copy_closure(self, store_path: Path, host: RemoteHost) -> None:
        cmd = self._nix("copy", "--to", host.store_uri, store_path).with_message(
            "Copying configuration to target"
        )
        if host.ssh_opts:
            cmd = cmd.set_env("NIX_SSHOPTS", host.ssh_opts)
        await self.runner.run(cmd)

    async def repl(self, installable: Installable, extra_args: Sequence[str] = ()) -> None:
        await self.runner.run(
            self._nix("repl", *installable.to_build_args(), *extra_args)
        )
