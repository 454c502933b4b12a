"""
Domain Errors

Architectural Intent:
- Single exception hierarchy for every failure the deployment core can surface
- Resolution, tool-invocation, user-rejection, consistency and environment
  failures are distinct types so callers can react without string matching
"""

from __future__ import annotations
from typing import Optional, Sequence


class NixDeployError(Exception):
    """Base class for all nixdeploy errors."""


class AttributePathError(NixDeployError, ValueError):
    pass


class ResolutionError(NixDeployError):
    """An installable could not be resolved against its configuration tree."""

    def __init__(self, message: str, attempted: Sequence[str] = ()) -> None:
        self.attempted = tuple(attempted)
        if self.attempted:
            message = f"{message}, tried: {', '.join(self.attempted)}"
        super().__init__(message)


class CommandFailedError(NixDeployError):
    """An external program exited non-zero or could not be spawned."""

    def __init__(
        self,
        command: Sequence[str],
        exit_status: Optional[int],
        message: Optional[str] = None,
    ) -> None:
        self.command = tuple(command)
        self.exit_status = exit_status
        if exit_status is None:
            detail = f"failed to spawn {self.command[0] if self.command else '?'}"
        else:
            detail = f"command exited with status {exit_status}"
        super().__init__(f"{message}: {detail}" if message else detail[:1].upper() + detail[1:])


class BuildError(CommandFailedError):
    pass


class ActivationError(CommandFailedError):
    pass


class UserRejectedError(NixDeployError):
    def __init__(self, message: str = "User rejected the new config") -> None:
        super().__init__(message)


class GenerationError(NixDeployError):
    pass


class ProfileRevertError(NixDeployError):
    """The compensating profile revert failed after an activation failure."""

    def __init__(self, activation_error: Exception, revert_error: Exception) -> None:
        self.activation_error = activation_error
        self.revert_error = revert_error
        super().__init__(
            f"Activation failed ({activation_error}) and reverting the profile "
            f"also failed ({revert_error})"
        )


class MissingEnvironmentError(NixDeployError):
    pass


class RootNotAllowedError(NixDeployError):
    pass
