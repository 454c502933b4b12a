"""
Installable Resolution Service

Architectural Intent:
- Pure domain service resolving an Installable against a tree of named
  configurations (nixosConfigurations, homeConfigurations, ...)
- Tree membership is answered by the NixPort; this module only decides
  which names to probe and in which order
- An explicit attribute is never overridden; the first probe hit wins
"""

from __future__ import annotations
import logging
from typing import List, Optional, Sequence

from nixdeploy.domain.errors import MissingEnvironmentError, ResolutionError
from nixdeploy.domain.ports.nix_port import NixPort
from nixdeploy.domain.value_objects.installable import (
    ExpressionInstallable,
    FileInstallable,
    FlakeInstallable,
    Installable,
)

logger = logging.getLogger(__name__)

_TREE_VARIANTS = (FlakeInstallable, FileInstallable, ExpressionInstallable)


def candidate_names(user: Optional[str], hostname: Optional[str]) -> List[str]:
    """Names probed when no configuration name was given, most specific first."""
    if not user:
        raise MissingEnvironmentError(
            "Cannot detect the configuration automatically: USER is not set"
        )
    if hostname:
        return [f"{user}@{hostname}", user]
    return [user]


async def resolve_against_tree(
    installable: Installable,
    nix: NixPort,
    config_type: str,
    extra_path: Sequence[str] = (),
    explicit_name: Optional[str] = None,
    user: Optional[str] = None,
    hostname: Optional[str] = None,
    push_drv: bool = True,
    extra_args: Sequence[str] = (),
) -> Installable:
    if not isinstance(installable, _TREE_VARIANTS):
        return installable

    if installable.attribute:
        logger.debug(
            "Using explicit attribute path from installable: %s", installable.attribute
        )
        return installable

    root = installable.with_attribute(installable.attribute.append(config_type))

    if explicit_name is not None:
        names = [explicit_name]
    else:
        names = candidate_names(user, hostname)

    attempted = []
    for name in names:
        attempted.append(str(root.with_attribute(root.attribute.append(name))))
        if await nix.has_attribute(root, name, extra_args):
            logger.debug("Using configuration %s", name)
            attribute = root.attribute.append(name)
            if push_drv:
                attribute = attribute.extend(extra_path)
            return root.with_attribute(attribute)

    if explicit_name is not None:
        raise ResolutionError(
            f"Explicitly specified configuration not found: {attempted[0]}"
        )
    raise ResolutionError("Couldn't find configuration automatically", attempted)
