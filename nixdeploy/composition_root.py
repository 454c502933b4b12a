"""
Composition Root

Architectural Intent:
- Dependency injection composition root for nixdeploy
- Single place where adapters, platforms and use cases are wired together
- The only place that reads the process environment (via HostContext)

Design Decisions:
- Uses a simple dataclass container instead of a DI framework
- Factory function creates and wires all dependencies
"""

from dataclasses import dataclass
from typing import Optional

from nixdeploy.application.platforms import HomeManagerPlatform, NixOSPlatform
from nixdeploy.application.use_cases.list_generations import ListGenerations
from nixdeploy.application.use_cases.open_repl import OpenRepl
from nixdeploy.application.use_cases.rebuild_configuration import RebuildConfiguration
from nixdeploy.application.use_cases.rollback_generation import RollbackGeneration
from nixdeploy.infrastructure.adapters.elevation import select_elevation_strategy
from nixdeploy.infrastructure.adapters.generation_registry import GenerationRegistry
from nixdeploy.infrastructure.adapters.nix_adapter import NixAdapter
from nixdeploy.infrastructure.adapters.nvd_adapter import NvdDiffAdapter
from nixdeploy.infrastructure.adapters.prompt_adapter import TerminalConfirmation
from nixdeploy.infrastructure.adapters.subprocess_runner import SubprocessRunner
from nixdeploy.infrastructure.config import HostContext, NixDeployConfig, load_config


@dataclass
class NixDeployContainer:
    """DI container holding all wired dependencies."""

    config: NixDeployConfig
    context: HostContext
    runner: SubprocessRunner
    nix_adapter: NixAdapter
    registry: GenerationRegistry
    nixos: NixOSPlatform
    home_manager: HomeManagerPlatform
    rebuild: RebuildConfiguration
    rollback: RollbackGeneration
    repl: OpenRepl
    list_generations: ListGenerations


def create_container(
    config: Optional[NixDeployConfig] = None,
    context: Optional[HostContext] = None,
) -> NixDeployContainer:
    """Create and wire all dependencies."""
    context = context or HostContext.from_environ()
    config = config or load_config(environ=context.environ)

    runner = SubprocessRunner(
        context.environ,
        elevation=select_elevation_strategy(),
        askpass=config.sudo.askpass,
    )
    nix_adapter = NixAdapter(runner, context, use_nom=config.build.nom)
    diff_adapter = NvdDiffAdapter(runner)
    registry = GenerationRegistry(runner)
    confirmation = TerminalConfirmation()

    return NixDeployContainer(
        config=config,
        context=context,
        runner=runner,
        nix_adapter=nix_adapter,
        registry=registry,
        nixos=NixOSPlatform(config.os),
        home_manager=HomeManagerPlatform(config.home),
        rebuild=RebuildConfiguration(
            nix_adapter, diff_adapter, runner, confirmation, context
        ),
        rollback=RollbackGeneration(
            registry, diff_adapter, runner, confirmation, context, config.os
        ),
        repl=OpenRepl(nix_adapter, context),
        list_generations=ListGenerations(registry),
    )
