"""
Elevation Strategies

Architectural Intent:
- Builds the sudo wrapper for an elevated Command
- Two concrete strategies, chosen once at startup by a host capability probe:
  Linux sudo enumerates preserved variables in --preserve-env, macOS sudo
  normalizes HOME with --set-home and only preserves when the flag exists
- Variables with an explicit value are passed through `env K=V`, which
  survives sudo's environment reset
"""

from __future__ import annotations
from abc import ABC, abstractmethod
import logging
import subprocess
import sys
from typing import Dict, List, Optional, Tuple

from nixdeploy.domain.value_objects.command import Command, EnvActionKind

logger = logging.getLogger(__name__)


def _split_env(command: Command) -> Tuple[List[str], Dict[str, str]]:
    preserve: List[str] = []
    explicit: Dict[str, str] = {}
    for key, action in command.env_actions.items():
        if action.kind is EnvActionKind.SET:
            explicit[key] = action.value or ""
        elif action.kind is EnvActionKind.PRESERVE:
            preserve.append(key)
    return preserve, explicit


class ElevationStrategy(ABC):
    @abstractmethod
    def _sudo_flags(self, preserve: List[str]) -> List[str]:
        pass

    def wrap(
        self, command: Command, askpass: Optional[str] = None
    ) -> Tuple[List[str], Dict[str, str]]:
        """Return the elevated argv and extra environment for the sudo process."""
        preserve, explicit = _split_env(command)
        argv = ["sudo"] + self._sudo_flags(preserve)
        sudo_env: Dict[str, str] = {}

        if askpass:
            sudo_env["SUDO_ASKPASS"] = askpass
            argv.append("-A")

        if explicit:
            argv.append("env")
            argv.extend(f"{key}={value}" for key, value in explicit.items())

        argv.extend(command.argv)
        return argv, sudo_env


class LinuxSudo(ElevationStrategy):
    def _sudo_flags(self, preserve: List[str]) -> List[str]:
        if preserve:
            return [f"--preserve-env={','.join(preserve)}"]
        return []


class DarwinSudo(ElevationStrategy):
    def __init__(self, has_preserve_env: bool):
        self.has_preserve_env = has_preserve_env

    def _sudo_flags(self, preserve: List[str]) -> List[str]:
        flags = ["--set-home"]
        if self.has_preserve_env and preserve:
            flags.append(f"--preserve-env={','.join(preserve)}")
        return flags


def sudo_supports_preserve_env() -> bool:
    try:
        result = subprocess.run(
            ["sudo", "--help"],
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("Could not probe sudo: %s", e)
        return False
    return "--preserve-env" in result.stdout


def select_elevation_strategy(platform: str = sys.platform) -> ElevationStrategy:
    if platform == "darwin":
        return DarwinSudo(has_preserve_env=sudo_supports_preserve_env())
    return LinuxSudo()
