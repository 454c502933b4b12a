"""
Subprocess Runner

Architectural Intent:
- Infrastructure adapter implementing CommandRunnerPort
- Applies the Command's environment policy, wraps elevated commands with
  the selected ElevationStrategy and hands remote commands to Fabric
- Blocking process calls run in the default executor; one command at a time

Security:
- Local commands are spawned from an argv list, never through a shell
- Remote command lines are rendered with shlex.join
"""

from __future__ import annotations
import asyncio
import logging
import shlex
import subprocess
from typing import Dict, List, Mapping, Optional, Tuple

from nixdeploy.domain.errors import CommandFailedError
from nixdeploy.domain.ports.command_runner_port import CommandRunnerPort
from nixdeploy.domain.value_objects.command import Command, EnvActionKind
from nixdeploy.infrastructure.adapters.elevation import ElevationStrategy, LinuxSudo
from nixdeploy.infrastructure.adapters.fabric_adapter import FabricRemoteShell

logger = logging.getLogger(__name__)


class SubprocessRunner(CommandRunnerPort):
    def __init__(
        self,
        environ: Mapping[str, str],
        elevation: Optional[ElevationStrategy] = None,
        askpass: Optional[str] = None,
        remote_shell: Optional[FabricRemoteShell] = None,
    ):
        self.environ = dict(environ)
        self.elevation = elevation or LinuxSudo()
        self.askpass = askpass or None
        self.remote_shell = remote_shell or FabricRemoteShell()

    def prepare(self, command: Command) -> Tuple[List[str], Dict[str, str]]:
        """Final argv and process environment for a local spawn of command."""
        env = dict(self.environ)
        if command.elevate:
            argv, sudo_env = self.elevation.wrap(command, self.askpass)
            env.update(sudo_env)
            return argv, env

        for key, action in command.env_actions.items():
            if action.kind is EnvActionKind.SET:
                env[key] = action.value or ""
            elif action.kind is EnvActionKind.PRESERVE:
                if key in self.environ:
                    env[key] = self.environ[key]
            else:
                env.pop(key, None)
        return list(command.argv), env

    def remote_command_line(self, command: Command) -> str:
        if command.elevate:
            argv, _ = self.elevation.wrap(command, None)
        else:
            explicit = [
                f"{key}={action.value or ''}"
                for key, action in command.env_actions.items()
                if action.kind is EnvActionKind.SET
            ]
            argv = (["env"] + explicit if explicit else []) + list(command.argv)
        return shlex.join(argv)

    def _announce(self, command: Command, argv: List[str]) -> None:
        if command.message:
            logger.info("%s", command.message)
        where = f" on {command.host}" if command.host else ""
        context = {"command": argv, "host": str(command.host) if command.host else None}
        logger.debug("Running%s: %s", where, shlex.join(argv), extra=context)

    async def _in_executor(self, func):
        return await asyncio.get_event_loop().run_in_executor(None, func)

    async def run(self, command: Command) -> None:
        if command.host is not None:
            await self._run_remote(command)
            return

        argv, env = self.prepare(command)
        self._announce(command, argv)
        if command.dry:
            return

        def _run() -> int:
            try:
                return subprocess.run(argv, env=env).returncode
            except OSError as e:
                logger.debug("Failed to spawn %s: %s", argv[0], e)
                raise CommandFailedError(argv, None, command.message) from e

        returncode = await self._in_executor(_run)
        if returncode != 0:
            raise CommandFailedError(argv, returncode, command.message)

    async def _run_remote(self, command: Command) -> None:
        command_line = self.remote_command_line(command)
        self._announce(command, [command_line])
        if command.dry:
            return

        exit_status = await self._in_executor(
            lambda: self.remote_shell.run(command.host, command_line, pty=command.elevate)
        )
        if exit_status != 0:
            raise CommandFailedError(command.argv, exit_status, command.message)

    async def capture(self, command: Command) -> Optional[str]:
        argv, env = self.prepare(command.elevated(False))
        self._announce(command, argv)
        if command.dry:
            return None

        def _capture() -> subprocess.CompletedProcess:
            try:
                return subprocess.run(argv, env=env, stdout=subprocess.PIPE, text=True)
            except OSError as e:
                raise CommandFailedError(argv, None, command.message) from e

        result = await self._in_executor(_capture)
        if result.returncode != 0:
            raise CommandFailedError(argv, result.returncode, command.message)
        return result.stdout

    async def run_pipeline(self, head: Command, tail: Command) -> None:
        head_argv, head_env = self.prepare(head)
        tail_argv, tail_env = self.prepare(tail)
        self._announce(head, head_argv + ["|"] + tail_argv)
        if head.dry or tail.dry:
            return

        def _pipeline() -> int:
            try:
                producer = subprocess.Popen(
                    head_argv,
                    env=head_env,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                )
            except OSError as e:
                raise CommandFailedError(head_argv, None, head.message) from e
            try:
                consumer = subprocess.Popen(tail_argv, env=tail_env, stdin=producer.stdout)
            except OSError as e:
                producer.kill()
                producer.wait()
                raise CommandFailedError(tail_argv, None, head.message) from e
            producer.stdout.close()
            returncode = consumer.wait()
            producer.wait()
            return returncode

        returncode = await self._in_executor(_pipeline)
        if returncode != 0:
            raise CommandFailedError(tail_argv, returncode, head.message)
