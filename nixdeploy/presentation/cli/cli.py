"""
CLI Module

Architectural Intent:
- Command-line interface for nixdeploy
- Entry point for all user interactions
- Delegates to application use cases via composition root
- Supports --verbose/--debug flags for log level control
- Arguments after `--` are passed through to nix untouched
"""

import argparse
import sys
import asyncio
import logging
import traceback
from dataclasses import replace
from pathlib import Path

from nixdeploy.application.platforms import (
    DiffMode,
    HomeManagerPlatform,
    RebuildRequest,
    RebuildVariant,
    RollbackRequest,
)
from nixdeploy.composition_root import create_container
from nixdeploy.domain.errors import NixDeployError
from nixdeploy.domain.value_objects.attribute_path import AttributePath
from nixdeploy.domain.value_objects.installable import (
    ExpressionInstallable,
    FileInstallable,
    FlakeInstallable,
    StoreInstallable,
)
from nixdeploy.domain.value_objects.remote_host import RemoteHost
from nixdeploy.infrastructure.config import load_config, resolve_installable
from nixdeploy.infrastructure.logging import configure_logging

OS_REBUILDS = ("switch", "boot", "test", "build", "build-vm")
HOME_REBUILDS = ("switch", "build")


def split_passthrough(argv):
    """Split argv at the first `--`; everything after it goes to nix."""
    if "--" in argv:
        idx = argv.index("--")
        return argv[:idx], tuple(argv[idx + 1:])
    return argv, ()


def _add_installable_args(parser):
    parser.add_argument(
        "installable",
        nargs="?",
        help="Flake reference (ref#attr), or the attribute path with --file/--expr",
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--file", "-f", help="Evaluate a Nix file instead of a flake")
    source.add_argument("--expr", "-E", help="Evaluate a Nix expression instead of a flake")
    source.add_argument("--store-path", help="Use an already built store path")


def _add_confirmation_args(parser):
    parser.add_argument(
        "--dry", "-n", action="store_true", help="Only print actions, without performing them"
    )
    parser.add_argument(
        "--ask", "-a", action="store_true", help="Ask for confirmation before activating"
    )
    parser.add_argument(
        "--diff",
        choices=[m.value for m in DiffMode],
        default=None,
        help="Whether to compare against the current configuration",
    )
    parser.add_argument("--specialisation", "-s", help="Specialisation to activate")
    parser.add_argument(
        "--no-specialisation", "-S", action="store_true", help="Ignore specialisations"
    )


def _add_rebuild_args(parser, name_flags, name_help):
    _add_installable_args(parser)
    _add_confirmation_args(parser)
    parser.add_argument(*name_flags, dest="configuration", help=name_help)
    parser.add_argument("--out-link", "-o", help="Keep a result symlink at this path")


def _add_remote_args(parser):
    parser.add_argument("--build-host", help="Build on this host (user@host[:port])")
    parser.add_argument("--target-host", help="Deploy to this host (user@host[:port])")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="nixdeploy: build, compare and activate Nix configurations"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose output"
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug output with tracebacks"
    )
    parser.add_argument(
        "--log-json", action="store_true", help="Emit structured JSON logs"
    )
    parser.add_argument("--config", help="Path to the nixdeploy.json config file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    os_parser = subparsers.add_parser("os", help="NixOS functionality")
    os_sub = os_parser.add_subparsers(dest="action", help="NixOS actions")
    for variant in OS_REBUILDS:
        sub = os_sub.add_parser(variant, help=f"Rebuild and {variant} a NixOS configuration")
        _add_rebuild_args(sub, ("--hostname", "-H"), "Output to choose from nixosConfigurations")
        _add_remote_args(sub)
        sub.add_argument(
            "--bypass-root-check", "-R", action="store_true",
            help="Don't refuse to run as root; nix then runs without sudo",
        )
        if variant == "build-vm":
            sub.add_argument(
                "--with-bootloader", "-B", action="store_true",
                help="Build the VM with its bootloader",
            )

    rollback = os_sub.add_parser("rollback", help="Roll back to a previous generation")
    _add_confirmation_args(rollback)
    rollback.add_argument("--to", "-t", type=int, help="Generation number to roll back to")
    rollback.add_argument(
        "--bypass-root-check", "-R", action="store_true",
        help="Don't refuse to run as root; nix then runs without sudo",
    )

    os_repl = os_sub.add_parser("repl", help="Load a NixOS configuration in a nix repl")
    _add_installable_args(os_repl)
    os_repl.add_argument("--hostname", "-H", dest="configuration")

    info = os_sub.add_parser("info", help="List the generations of a profile")
    info.add_argument("--profile", "-P", help="Profile to inspect")

    home_parser = subparsers.add_parser("home", help="Home-Manager functionality")
    home_sub = home_parser.add_subparsers(dest="action", help="Home-Manager actions")
    for variant in HOME_REBUILDS:
        sub = home_sub.add_parser(variant, help=f"Rebuild and {variant} a Home-Manager configuration")
        _add_rebuild_args(
            sub, ("--configuration", "-c"), "Output to choose from homeConfigurations"
        )
        sub.add_argument(
            "--backup-extension", "-b", help="Move clobbered files aside with this extension"
        )

    home_repl = home_sub.add_parser("repl", help="Load a Home-Manager configuration in a nix repl")
    _add_installable_args(home_repl)
    home_repl.add_argument("--configuration", "-c", dest="configuration")

    return parser


def installable_from_args(args, override, default):
    if args.store_path:
        given = StoreInstallable(Path(args.store_path))
    elif args.file:
        given = FileInstallable(Path(args.file), AttributePath.parse(args.installable or ""))
    elif args.expr:
        given = ExpressionInstallable(args.expr, AttributePath.parse(args.installable or ""))
    elif args.installable:
        given = FlakeInstallable.parse(args.installable)
    else:
        given = None
    return resolve_installable(override, given, default)


def _host(value):
    return RemoteHost.parse(value) if value else None


def _diff_mode(args, config) -> DiffMode:
    return DiffMode(args.diff or config.build.diff)


def rebuild_request(args, config, override, extra_args) -> RebuildRequest:
    return RebuildRequest(
        installable=installable_from_args(args, override, config.flake),
        variant=RebuildVariant(args.action),
        out_link=Path(args.out_link) if args.out_link else None,
        dry=args.dry,
        ask=args.ask,
        diff=_diff_mode(args, config),
        configuration=args.configuration,
        specialisation=args.specialisation,
        no_specialisation=args.no_specialisation,
        build_host=_host(getattr(args, "build_host", None)),
        target_host=_host(getattr(args, "target_host", None)),
        extra_args=extra_args,
        bypass_root_check=getattr(args, "bypass_root_check", False),
        with_bootloader=getattr(args, "with_bootloader", False),
    )


def print_generations(generations) -> None:
    print(f"{'Generation':<12}{'Build date':<22}{'NixOS version':<28}{'Kernel':<14}Specialisations")
    for gen in reversed(generations):
        created = gen.created.strftime("%Y-%m-%d %H:%M:%S") if gen.created else "?"
        number = f"{gen.number}{' current' if gen.current else ''}"
        print(
            f"{number:<12}{created:<22}{gen.nixos_version or '?':<28}"
            f"{gen.kernel_version or '?':<14}{' '.join(gen.specialisations) or '*'}"
        )


async def run_os(container, args, extra_args) -> None:
    config = container.config
    if args.action in OS_REBUILDS:
        request = rebuild_request(args, config, config.os.flake, extra_args)
        await container.rebuild.execute(container.nixos, request)
    elif args.action == "rollback":
        request = RollbackRequest(
            to=args.to,
            dry=args.dry,
            ask=args.ask,
            diff=_diff_mode(args, config),
            specialisation=args.specialisation,
            no_specialisation=args.no_specialisation,
            bypass_root_check=args.bypass_root_check,
        )
        target = await container.rollback.execute(request)
        print(f"[+] Rolled back to {target}")
    elif args.action == "repl":
        installable = installable_from_args(args, config.os.flake, config.flake)
        await container.repl.execute(
            container.nixos, installable, args.configuration, extra_args
        )
    elif args.action == "info":
        profile = Path(args.profile or config.os.system_profile)
        print_generations(container.list_generations.execute(profile))


async def run_home(container, args, extra_args) -> None:
    config = container.config
    if args.action in HOME_REBUILDS:
        request = rebuild_request(args, config, config.home.flake, extra_args)
        platform = container.home_manager
        if args.backup_extension:
            platform = HomeManagerPlatform(
                replace(config.home, backup_extension=args.backup_extension)
            )
        await container.rebuild.execute(platform, request)
    elif args.action == "repl":
        installable = installable_from_args(args, config.home.flake, config.flake)
        await container.repl.execute(
            container.home_manager, installable, args.configuration, extra_args
        )


async def async_main(argv=None):
    argv, extra_args = split_passthrough(list(sys.argv[1:] if argv is None else argv))
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config)

    # Configure logging based on flags
    if args.debug:
        level = logging.DEBUG
    elif args.verbose:
        level = logging.INFO
    else:
        level = getattr(logging, config.log_level.upper(), logging.WARNING)
    configure_logging(level=level, json_format=args.log_json)

    verbose = args.verbose or args.debug

    if args.command is None or getattr(args, "action", None) is None:
        parser.print_help()
        return

    try:
        container = create_container(config=config)
        if args.command == "os":
            await run_os(container, args, extra_args)
        elif args.command == "home":
            await run_home(container, args, extra_args)
    except KeyboardInterrupt:
        print("\n[*] Interrupted.")
        sys.exit(130)
    except (NixDeployError, ValueError) as e:
        print(f"[-] {e}")
        if verbose:
            traceback.print_exc()
        sys.exit(1)


def main():
    asyncio.run(async_main())


if __name__ == "__main__":
    main()
