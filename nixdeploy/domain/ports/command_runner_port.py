"""
Command Runner Port

Architectural Intent:
- Port interface for executing Command descriptions
- Hides local/remote/elevated execution behind one contract
- Implemented by SubprocessRunner
"""

from abc import ABC, abstractmethod
from typing import Optional
from nixdeploy.domain.value_objects.command import Command


class CommandRunnerPort(ABC):
    """
    Port interface for running external programs.
    """

    @abstractmethod
    async def run(self, command: Command) -> None:
        """
        Runs the command with inherited stdio.
        Raises CommandFailedError on non-zero exit or spawn failure.
        A dry command is only logged.
        """
        pass

    @abstractmethod
    async def capture(self, command: Command) -> Optional[str]:
        """
        Runs the command locally and returns its stdout.
        Returns None for a dry command.
        """
        pass

    @abstractmethod
    async def run_pipeline(self, head: Command, tail: Command) -> None:
        """
        Pipes head's stdout and stderr into tail's stdin.
        Only the tail's exit status is interpreted.
        """
        pass
