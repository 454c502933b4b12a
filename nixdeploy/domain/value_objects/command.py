"""
Command Value Object

Architectural Intent:
- Immutable description of one external program invocation
- Carries argv, a per-variable environment policy, elevation, remote host,
  dry-run and a human readable message
- Executed by a CommandRunnerPort; building a Command has no side effects
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import Dict, Iterable, Mapping, Optional, Tuple

from nixdeploy.domain.value_objects.remote_host import RemoteHost

NIX_PRESERVED_VARIABLES = (
    "PATH",
    "NIX_CONFIG",
    "NIX_PATH",
    "NIX_REMOTE",
    "NIX_SSL_CERT_FILE",
    "NIX_USER_CONF_FILES",
)


class EnvActionKind(Enum):
    SET = auto()
    PRESERVE = auto()
    UNSET = auto()


@dataclass(frozen=True)
class EnvAction:
    kind: EnvActionKind
    value: Optional[str] = None

    @classmethod
    def set(cls, value: str) -> "EnvAction":
        return cls(EnvActionKind.SET, value)

    @classmethod
    def preserve(cls) -> "EnvAction":
        return cls(EnvActionKind.PRESERVE)

    @classmethod
    def unset(cls) -> "EnvAction":
        return cls(EnvActionKind.UNSET)


@dataclass(frozen=True)
class Command:
    program: str
    args: Tuple[str, ...] = ()
    env: Tuple[Tuple[str, EnvAction], ...] = ()
    elevate: bool = False
    host: Optional[RemoteHost] = None
    dry: bool = False
    message: Optional[str] = None

    @property
    def argv(self) -> Tuple[str, ...]:
        return (self.program,) + self.args

    @property
    def env_actions(self) -> Dict[str, EnvAction]:
        """Environment policy; a later action for the same variable wins."""
        return dict(self.env)

    def with_args(self, *args: object) -> "Command":
        return replace(self, args=self.args + tuple(str(a) for a in args))

    def with_env(self, key: str, action: EnvAction) -> "Command":
        return replace(self, env=self.env + ((key, action),))

    def set_env(self, key: str, value: str) -> "Command":
        return self.with_env(key, EnvAction.set(value))

    def preserve_env(self, *keys: str) -> "Command":
        return replace(
            self, env=self.env + tuple((k, EnvAction.preserve()) for k in keys)
        )

    def unset_env(self, key: str) -> "Command":
        return self.with_env(key, EnvAction.unset())

    def with_nix_env(
        self,
        home: Optional[str],
        user: Optional[str],
        environ: Optional[Mapping[str, str]] = None,
        passthrough_prefix: str = "NIXDEPLOY_",
    ) -> "Command":
        """Environment Nix needs, including under sudo.

        HOME and USER are pinned to the invoking user's values, the Nix
        variables are preserved and every ``passthrough_prefix`` variable is
        forwarded verbatim.
        """
        cmd = self
        if home is not None:
            cmd = cmd.set_env("HOME", home)
        if user is not None:
            cmd = cmd.set_env("USER", user)
        cmd = cmd.preserve_env(*NIX_PRESERVED_VARIABLES)
        environ = environ or {}
        for key in sorted(environ):
            if key.startswith(passthrough_prefix):
                cmd = cmd.set_env(key, environ[key])
        return cmd

    def elevated(self, elevate: bool = True) -> "Command":
        return replace(self, elevate=elevate)

    def on_host(self, host: Optional[RemoteHost]) -> "Command":
        return replace(self, host=host)

    def dry_run(self, dry: bool = True) -> "Command":
        return replace(self, dry=dry)

    def with_message(self, message: str) -> "Command":
        return replace(self, message=message)

    @staticmethod
    def of(program: object, args: Iterable[object] = ()) -> "Command":
        return Command(program=str(program), args=tuple(str(a) for a in args))
