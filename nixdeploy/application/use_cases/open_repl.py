"""
Open Repl Use Case

Architectural Intent:
- Resolves a configuration the same way a rebuild does, without the
  derivation tail, and opens `nix repl` on it
"""

from nixdeploy.application.platforms import Platform
from nixdeploy.domain.errors import ResolutionError
from nixdeploy.domain.ports.nix_port import NixPort
from nixdeploy.domain.services.installable_resolution import resolve_against_tree
from nixdeploy.domain.value_objects.installable import Installable, StoreInstallable
from nixdeploy.infrastructure.config import HostContext


class OpenRepl:
    def __init__(self, nix_port: NixPort, context: HostContext):
        self.nix_port = nix_port
        self.context = context

    async def execute(
        self,
        platform: Platform,
        installable: Installable,
        configuration: str = None,
        extra_args=(),
    ) -> Installable:
        if isinstance(installable, StoreInstallable):
            raise ResolutionError("Nix doesn't support nix store installables with repl")

        resolved = await resolve_against_tree(
            installable,
            self.nix_port,
            platform.config_type,
            explicit_name=platform.configuration_name(self.context, configuration),
            user=self.context.user,
            hostname=self.context.hostname,
            push_drv=False,
            extra_args=extra_args,
        )
        await self.nix_port.repl(resolved, extra_args)
        return resolved
