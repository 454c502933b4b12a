"""
Nix Port

Architectural Intent:
- Port interface for the external evaluator/builder
- Abstracts build, attribute probing, profile registration, closure copy and repl
- Implemented by NixAdapter
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Sequence

from nixdeploy.domain.value_objects.installable import Installable
from nixdeploy.domain.value_objects.remote_host import RemoteHost


class NixPort(ABC):
    """
    Port interface for interacting with the Nix CLI.
    """

    @abstractmethod
    async def build(
        self,
        installable: Installable,
        out_link: Path,
        extra_args: Sequence[str] = (),
        builder: Optional[RemoteHost] = None,
        message: Optional[str] = None,
    ) -> None:
        """
        Builds the installable and links the result at out_link.
        """
        pass

    @abstractmethod
    async def has_attribute(
        self, installable: Installable, name: str, extra_args: Sequence[str] = ()
    ) -> bool:
        """
        True when the attribute set addressed by installable contains name.
        """
        pass

    @abstractmethod
    async def set_profile(
        self,
        profile: Path,
        store_path: Path,
        elevate: bool,
        host: Optional[RemoteHost] = None,
    ) -> None:
        """
        Adds store_path as a new generation of profile.
        """
        pass

    @abstractmethod
    async def copy_closure(self, store_path: Path, host: RemoteHost) -> None:
        """
        Copies the closure of store_path to host.
        """
        pass

    @abstractmethod
    async def repl(self, installable: Installable, extra_args: Sequence[str] = ()) -> None:
        """
        Opens an interactive repl on installable.
        """
        pass
