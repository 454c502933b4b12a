"""
Fabric Adapter

Architectural Intent:
- Runs a fully rendered command line on a remote host over SSH via Fabric
- Used by SubprocessRunner for every Command that carries a RemoteHost

Security:
- SSH connections use connect_timeout, allow_agent, look_for_keys
- The command line is rendered with shlex.join by the caller; nothing here
  interpolates user input
"""

import logging
from fabric import Connection
from nixdeploy.domain.errors import CommandFailedError
from nixdeploy.domain.value_objects.remote_host import RemoteHost

logger = logging.getLogger(__name__)


class FabricRemoteShell:
    """Remote shell backed by a Fabric Connection."""

    def _get_connection(self, host: RemoteHost) -> Connection:
        return Connection(
            host=host.host,
            user=host.user,
            port=host.port,
            connect_timeout=30,
            connect_kwargs={
                "allow_agent": True,
                "look_for_keys": True,
            },
        )

    def run(self, host: RemoteHost, command_line: str, pty: bool = False) -> int:
        """Run command_line on host with output streamed; return the exit status."""
        logger.debug("Running on %s: %s", host, command_line)
        conn = self._get_connection(host)
        try:
            result = conn.run(command_line, warn=True, hide=False, pty=pty)
            return result.exited
        except Exception as e:
            raise CommandFailedError(
                ("ssh", str(host)), None, f"Connection to {host} failed: {e}"
            ) from e
        finally:
            conn.close()
