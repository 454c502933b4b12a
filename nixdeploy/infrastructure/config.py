"""
Configuration Module

Architectural Intent:
- Centralized configuration loading from a JSON file
- Provides typed access to all nixdeploy settings
- Falls back to sensible defaults when config file is absent
- Environment variables override file-based config
- Ambient identity (USER, HOME, hostname, uid) is captured once in HostContext
  and threaded through; nothing below the composition root reads os.environ

Design Decisions:
- Config is a frozen dataclass for immutability after load
- Nested config sections map to sub-dataclasses
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional
import dataclasses
import json
import logging
import os
import socket

from nixdeploy.domain.errors import MissingEnvironmentError
from nixdeploy.domain.value_objects.installable import FlakeInstallable, Installable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OsConfig:
    """NixOS system settings."""
    flake: str = ""
    system_profile: str = "/nix/var/nix/profiles/system"
    current_profile: str = "/run/current-system"
    specialisation_marker: str = "/etc/specialisation"


@dataclass(frozen=True)
class HomeConfig:
    """Home-Manager settings."""
    flake: str = ""
    backup_extension: str = ""


@dataclass(frozen=True)
class SudoConfig:
    """Privilege elevation settings."""
    askpass: str = ""


@dataclass(frozen=True)
class BuildConfig:
    """Build and diff settings."""
    nom: bool = True
    diff: str = "auto"  # "auto", "always" or "never"


@dataclass(frozen=True)
class NixDeployConfig:
    """Root configuration for nixdeploy."""
    os: OsConfig = field(default_factory=OsConfig)
    home: HomeConfig = field(default_factory=HomeConfig)
    sudo: SudoConfig = field(default_factory=SudoConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    flake: str = ""
    log_level: str = "WARNING"


def _env_override(data: dict, environ: Mapping[str, str], prefix: str) -> dict:
    """Override config values with environment variables.

    Environment variables follow the pattern NIXDEPLOY_SECTION_KEY.
    For example: NIXDEPLOY_OS_FLAKE=/etc/nixos, NIXDEPLOY_BUILD_NOM=false
    """
    for key, value in environ.items():
        if not key.startswith(f"{prefix}_"):
            continue
        parts = key[len(prefix) + 1:].lower().split("_", 1)
        if len(parts) == 2 and parts[0] in _SECTIONS:
            section, field_name = parts
            if not isinstance(data.get(section), dict):
                data[section] = {}
            data[section][field_name] = value
        else:
            data["_".join(parts)] = value
    return data


def _parse_config_file(path: Path) -> dict:
    """Parse a JSON config file. Returns empty dict on failure."""
    try:
        with open(path) as f:
            return json.load(f)
    except FileNotFoundError:
        logger.debug("Config file not found: %s", path)
        return {}
    except json.JSONDecodeError as e:
        logger.warning("Invalid config file %s: %s", path, e)
        return {}


def _build_sub_config(cls, data: dict):
    """Build a sub-config dataclass from a dict, ignoring unknown keys."""
    valid_fields = {f.name for f in dataclasses.fields(cls)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}

    # string values from the environment
    for f in dataclasses.fields(cls):
        if f.name in filtered and isinstance(filtered[f.name], str):
            if f.type == "bool":
                filtered[f.name] = filtered[f.name].lower() in ("true", "1", "yes")

    return cls(**filtered)


_SECTIONS = {
    "os": OsConfig,
    "home": HomeConfig,
    "sudo": SudoConfig,
    "build": BuildConfig,
}


def load_config(
    path: Optional[str] = None,
    env_prefix: str = "NIXDEPLOY",
    environ: Optional[Mapping[str, str]] = None,
) -> NixDeployConfig:
    """Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables (NIXDEPLOY_SECTION_KEY)
    2. Config file values
    3. Defaults

    Args:
        path: Path to config file (JSON). Defaults to nixdeploy.json in CWD.
        env_prefix: Environment variable prefix. Defaults to NIXDEPLOY.
        environ: Environment to read overrides from. Defaults to os.environ.
    """
    config_path = Path(path) if path else Path("nixdeploy.json")
    data = _parse_config_file(config_path)
    data = _env_override(data, os.environ if environ is None else environ, env_prefix)

    sections = {
        name: _build_sub_config(cls, data.get(name) or {})
        for name, cls in _SECTIONS.items()
    }
    return NixDeployConfig(
        **sections,
        flake=data.get("flake", ""),
        log_level=data.get("log_level", "WARNING"),
    )


def resolve_installable(
    override: str,
    given: Optional[Installable],
    default: str = "",
) -> Installable:
    """Pick the installable for one invocation.

    A platform override (``reference#attribute``) beats the command line;
    the generic default is only used when nothing was given.
    """
    if override:
        logger.debug("Using installable override: %s", override)
        return FlakeInstallable.parse(override)
    if given is not None:
        return given
    return FlakeInstallable.parse(default or ".")


@dataclass(frozen=True)
class HostContext:
    """Identity and environment of the invoking process, captured once."""
    user: Optional[str] = None
    home: Optional[str] = None
    hostname: Optional[str] = None
    uid: int = -1
    environ: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({}), repr=False
    )

    @classmethod
    def from_environ(cls, environ: Optional[Mapping[str, str]] = None) -> "HostContext":
        env = dict(os.environ if environ is None else environ)
        try:
            hostname = socket.gethostname() or None
        except OSError as e:
            logger.warning("Failed to detect hostname: %s", e)
            hostname = None
        return cls(
            user=env.get("USER"),
            home=env.get("HOME"),
            hostname=hostname,
            uid=os.geteuid() if hasattr(os, "geteuid") else -1,
            environ=MappingProxyType(env),
        )

    @property
    def is_root(self) -> bool:
        return self.uid == 0

    def require_user(self) -> str:
        if not self.user:
            raise MissingEnvironmentError("Couldn't get username: USER is not set")
        return self.user

    def require_home(self) -> str:
        if not self.home:
            raise MissingEnvironmentError("Couldn't get home directory: HOME is not set")
        return self.home

    def require_hostname(self) -> str:
        if not self.hostname:
            raise MissingEnvironmentError(
                "Unable to fetch hostname automatically, and no hostname supplied"
            )
        return self.hostname
