"""
Domain Ports Package

Architectural Intent:
- Contains port interfaces (abstract contracts) for external dependencies
- Ports define what the domain needs, adapters implement how
- Follows Hexagonal Architecture principles
"""

from nixdeploy.domain.ports.command_runner_port import CommandRunnerPort
from nixdeploy.domain.ports.nix_port import NixPort
from nixdeploy.domain.ports.diff_port import DiffPort
from nixdeploy.domain.ports.confirmation_port import ConfirmationPort
from nixdeploy.domain.ports.profile_port import ProfilePort

__all__ = [
    "CommandRunnerPort",
    "NixPort",
    "DiffPort",
    "ConfirmationPort",
    "ProfilePort",
]
