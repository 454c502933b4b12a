"""
Remote Host Value Object

Architectural Intent:
- Immutable ssh destination used for remote builders, closure copies and
  remote activation
- Validates hostname format (DNS, IPv4, IPv6), port bounds, non-empty user
- Supports IPv6 bracket notation in parse() (e.g., deploy@[::1]:2222)
"""

import re
from dataclasses import dataclass
from typing import Optional

# RFC 1123 hostname: labels of alnum/hyphens, dot-separated
_HOSTNAME_RE = re.compile(
    r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)(\.[A-Za-z0-9-]{1,63})*$"
)

_IPV4_RE = re.compile(
    r"^(\d{1,3})\.(\d{1,3})\.(\d{1,3})\.(\d{1,3})$"
)

# simplified; accepts ::1, fe80::1 and friends
_IPV6_RE = re.compile(r"^[0-9a-fA-F:]+$")


def _is_valid_hostname(host: str) -> bool:
    if not host:
        return False

    m = _IPV4_RE.match(host)
    if m:
        return all(0 <= int(g) <= 255 for g in m.groups())

    if _IPV6_RE.match(host) and ":" in host:
        return True

    return bool(_HOSTNAME_RE.match(host)) and len(host) <= 253


@dataclass(frozen=True)
class RemoteHost:
    """
    An ssh destination. User and port are left to ssh defaults when unset.
    """
    host: str
    user: Optional[str] = None
    port: Optional[int] = None

    def __post_init__(self) -> None:
        if self.user is not None and not self.user:
            raise ValueError("Remote host user cannot be empty")
        if self.port is not None and not (1 <= self.port <= 65535):
            raise ValueError(f"Port must be 1-65535, got {self.port}")
        if not _is_valid_hostname(self.host):
            raise ValueError(f"Invalid hostname: {self.host!r}")

    @property
    def destination(self) -> str:
        """``user@host`` as understood by ssh and Nix store URIs."""
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{self.user}@{host}" if self.user else host

    @property
    def store_uri(self) -> str:
        return f"ssh://{self.destination}"

    @property
    def ssh_opts(self) -> Optional[str]:
        """Value for NIX_SSHOPTS when a non-default port is needed."""
        if self.port is not None and self.port != 22:
            return f"-p {self.port}"
        return None

    def __str__(self) -> str:
        if self.port is not None:
            return f"{self.destination}:{self.port}"
        return self.destination

    @staticmethod
    def parse(connection_string: str) -> "RemoteHost":
        """
        Parses 'user@host:port', 'host', or 'user@[::1]:port' into a RemoteHost.
        """
        user = None
        port = None
        host = connection_string.strip()

        if "@" in host:
            user, host = host.split("@", 1)

        if host.startswith("["):
            bracket_end = host.find("]")
            if bracket_end == -1:
                raise ValueError(f"Unterminated IPv6 bracket in: {connection_string}")
            remainder = host[bracket_end + 1:]
            if remainder.startswith(":"):
                port = int(remainder[1:])
            host = host[1:bracket_end]
        elif host.count(":") == 1:
            name, _, port_text = host.partition(":")
            try:
                port = int(port_text)
                host = name
            except ValueError:
                pass

        return RemoteHost(host=host, user=user, port=port)
