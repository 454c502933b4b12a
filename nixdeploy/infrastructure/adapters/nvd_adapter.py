"""
Nvd Adapter

Architectural Intent:
- Infrastructure adapter implementing DiffPort with `nvd diff OLD NEW`
"""

from pathlib import Path
from typing import Optional
from nixdeploy.domain.ports.command_runner_port import CommandRunnerPort
from nixdeploy.domain.ports.diff_port import DiffPort
from nixdeploy.domain.value_objects.command import Command


class NvdDiffAdapter(DiffPort):
    def __init__(self, runner: CommandRunnerPort):
        self.runner = runner

    async def diff(self, old: Path, new: Path, message: Optional[str] = None) -> None:
        cmd = Command.of("nvd", ["diff", old, new])
        if message:
            cmd = cmd.with_message(message)
        await self.runner.run(cmd)
