"""
Platforms

Architectural Intent:
- Describes what differs between deploying a NixOS system and a Home-Manager
  environment: configuration tree, attribute tail, baseline for diffs,
  specialisation marker, activation programs and elevation
- Use cases stay platform agnostic and ask the Platform for these details
- Request objects carry one invocation's options from the CLI to a use case
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple
import logging

from nixdeploy.domain.errors import ActivationError, RootNotAllowedError
from nixdeploy.domain.value_objects.command import Command
from nixdeploy.domain.value_objects.installable import Installable
from nixdeploy.domain.value_objects.remote_host import RemoteHost
from nixdeploy.infrastructure.config import HomeConfig, HostContext, OsConfig

logger = logging.getLogger(__name__)


class RebuildVariant(Enum):
    BUILD = "build"
    SWITCH = "switch"
    BOOT = "boot"
    TEST = "test"
    BUILD_VM = "build-vm"

    @property
    def build_only(self) -> bool:
        return self in (RebuildVariant.BUILD, RebuildVariant.BUILD_VM)


class DiffMode(Enum):
    AUTO = "auto"
    ALWAYS = "always"
    NEVER = "never"


@dataclass(frozen=True)
class RebuildRequest:
    installable: Installable
    variant: RebuildVariant
    out_link: Optional[Path] = None
    dry: bool = False
    ask: bool = False
    diff: DiffMode = DiffMode.AUTO
    configuration: Optional[str] = None
    specialisation: Optional[str] = None
    no_specialisation: bool = False
    build_host: Optional[RemoteHost] = None
    target_host: Optional[RemoteHost] = None
    extra_args: Tuple[str, ...] = ()
    bypass_root_check: bool = False
    with_bootloader: bool = False


@dataclass(frozen=True)
class RollbackRequest:
    to: Optional[int] = None
    dry: bool = False
    ask: bool = False
    diff: DiffMode = DiffMode.AUTO
    specialisation: Optional[str] = None
    no_specialisation: bool = False
    bypass_root_check: bool = False


def check_not_root(context: HostContext, bypass_root_check: bool) -> bool:
    """Return whether commands must be elevated with sudo."""
    if bypass_root_check:
        logger.warning("Bypassing root check, now running nix as root")
        return False
    if context.is_root:
        raise RootNotAllowedError(
            "Don't run nixdeploy as root. It calls sudo internally as needed"
        )
    return True


def resolve_specialisation(
    no_specialisation: bool,
    explicit: Optional[str],
    marker: Optional[Path],
) -> Optional[str]:
    """Explicit name first, then the marker file; a missing marker is fine."""
    if no_specialisation:
        return None
    if explicit:
        return explicit
    if marker is None:
        return None
    try:
        return marker.read_text().strip() or None
    except FileNotFoundError:
        return None


def specialised(path: Path, specialisation: Optional[str]) -> Path:
    if specialisation is None:
        return path
    return path / "specialisation" / specialisation


@dataclass(frozen=True)
class ActivationPlan:
    """What a variant does after the build: activation mode and boot registration."""
    activate: Optional[str] = None
    register_boot: bool = False


class Platform(ABC):
    name: str
    config_type: str
    temp_prefix: str
    strict_diff: bool = True
    remote_activation: bool = False
    variants: Tuple[RebuildVariant, ...] = ()

    @abstractmethod
    def attribute_tail(self, variant: RebuildVariant, with_bootloader: bool) -> Tuple[str, ...]:
        pass

    @abstractmethod
    def plan(self, variant: RebuildVariant) -> ActivationPlan:
        pass

    @abstractmethod
    def elevate(self, context: HostContext, bypass_root_check: bool) -> bool:
        pass

    @abstractmethod
    def configuration_name(
        self, context: HostContext, explicit: Optional[str]
    ) -> Optional[str]:
        pass

    @abstractmethod
    def diff_baseline(self, context: HostContext) -> Optional[Path]:
        pass

    @abstractmethod
    def specialisation_marker(self, context: HostContext) -> Optional[Path]:
        pass

    @abstractmethod
    def activation_command(
        self, target: Path, mode: str, context: HostContext
    ) -> Command:
        pass

    def boot_profile(self) -> Optional[Path]:
        return None

    def skip_compare(self, context: HostContext, explicit: Optional[str]) -> bool:
        return False


def _activation_program(path: Path) -> Path:
    try:
        return path.resolve(strict=True)
    except OSError as e:
        raise ActivationError(
            (str(path),), None, f"Activation program {path} not found"
        ) from e


class NixOSPlatform(Platform):
    name = "NixOS"
    config_type = "nixosConfigurations"
    temp_prefix = "nixdeploy-os"
    strict_diff = True
    remote_activation = True
    variants = tuple(RebuildVariant)

    def __init__(self, config: OsConfig):
        self.config = config

    def attribute_tail(self, variant, with_bootloader):
        if variant is RebuildVariant.BUILD_VM:
            final = "vmWithBootLoader" if with_bootloader else "vm"
        else:
            final = "toplevel"
        return ("config", "system", "build", final)

    def plan(self, variant):
        return {
            RebuildVariant.SWITCH: ActivationPlan(activate="test", register_boot=True),
            RebuildVariant.TEST: ActivationPlan(activate="test"),
            RebuildVariant.BOOT: ActivationPlan(register_boot=True),
        }.get(variant, ActivationPlan())

    def elevate(self, context, bypass_root_check):
        return check_not_root(context, bypass_root_check)

    def configuration_name(self, context, explicit):
        return explicit or context.require_hostname()

    def skip_compare(self, context, explicit):
        # comparing against a different machine's running system is meaningless
        return bool(explicit and context.hostname and explicit != context.hostname)

    def diff_baseline(self, context):
        current = Path(self.config.current_profile)
        return current if current.exists() else None

    def specialisation_marker(self, context):
        return Path(self.config.specialisation_marker)

    def boot_profile(self):
        return Path(self.config.system_profile)

    def activation_command(self, target, mode, context):
        program = _activation_program(target / "bin" / "switch-to-configuration")
        return Command.of(program, [mode])


class HomeManagerPlatform(Platform):
    name = "Home-Manager"
    config_type = "homeConfigurations"
    temp_prefix = "nixdeploy-home"
    strict_diff = False
    variants = (RebuildVariant.BUILD, RebuildVariant.SWITCH)

    def __init__(self, config: HomeConfig):
        self.config = config

    def attribute_tail(self, variant, with_bootloader):
        return ("config", "home", "activationPackage")

    def plan(self, variant):
        if variant is RebuildVariant.SWITCH:
            return ActivationPlan(activate="switch")
        return ActivationPlan()

    def elevate(self, context, bypass_root_check):
        return False

    def configuration_name(self, context, explicit):
        return explicit

    def diff_baseline(self, context):
        candidates = [
            Path("/nix/var/nix/profiles/per-user") / context.require_user() / "home-manager",
            Path(context.require_home()) / ".local/state/nix/profiles/home-manager",
        ]
        return next((p for p in candidates if p.exists()), None)

    def specialisation_marker(self, context):
        return Path(context.require_home()) / ".local/share/home-manager/specialisation"

    def activation_command(self, target, mode, context):
        cmd = Command.of(_activation_program(target / "activate")).with_nix_env(
            context.home, context.user, context.environ
        )
        if self.config.backup_extension:
            logger.info("Using %s as the backup extension", self.config.backup_extension)
            cmd = cmd.set_env("HOME_MANAGER_BACKUP_EXT", self.config.backup_extension)
        return cmd
