"""
Generation Registry

Architectural Intent:
- Infrastructure adapter implementing ProfilePort over a profile directory
- Generations are discovered from `{profile}-{number}-link` entries next to
  the profile symlink; this adapter never creates or deletes them
- Repointing writes a sibling symlink and renames it over the profile, so
  readers see either the old or the new target and nothing in between
"""

from __future__ import annotations
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple
import logging
import os
import re

from nixdeploy.domain.errors import GenerationError
from nixdeploy.domain.ports.command_runner_port import CommandRunnerPort
from nixdeploy.domain.ports.profile_port import ProfilePort
from nixdeploy.domain.services import generation_selection
from nixdeploy.domain.value_objects.command import Command
from nixdeploy.domain.value_objects.generation import GenerationInfo

logger = logging.getLogger(__name__)


def _read_text(path: Path) -> Optional[str]:
    try:
        return path.read_text().strip() or None
    except OSError:
        return None


def _kernel_version(snapshot: Path) -> Optional[str]:
    modules = snapshot / "kernel-modules" / "lib" / "modules"
    try:
        return next(iter(sorted(p.name for p in modules.iterdir())), None)
    except OSError:
        return None


def _specialisations(snapshot: Path) -> Tuple[str, ...]:
    try:
        return tuple(sorted(p.name for p in (snapshot / "specialisation").iterdir()))
    except OSError:
        return ()


def describe(link: Path, number: int, current: bool = False) -> GenerationInfo:
    snapshot = link.resolve()
    try:
        created = datetime.fromtimestamp(link.lstat().st_mtime)
    except OSError:
        created = None
    return GenerationInfo(
        number=number,
        link=link,
        path=snapshot,
        current=current,
        created=created,
        nixos_version=_read_text(snapshot / "nixos-version"),
        kernel_version=_kernel_version(snapshot),
        specialisations=_specialisations(snapshot),
    )


def _current_link(profile: Path) -> Optional[Path]:
    """What the profile symlink points at, one level deep."""
    if not profile.is_symlink():
        return None
    return profile.parent / os.readlink(profile)


def _is_current(link: Path, current: Optional[Path]) -> bool:
    if current is None:
        return False
    if current.name.endswith("-link"):
        return current.name == link.name
    # profile points straight at a store path
    return link.resolve() == current.resolve()


class GenerationRegistry(ProfilePort):
    def __init__(self, runner: CommandRunnerPort):
        self.runner = runner

    def list(self, profile: Path) -> List[GenerationInfo]:
        profile = Path(profile)
        pattern = re.compile(rf"^{re.escape(profile.name)}-(\d+)-link$")
        current = _current_link(profile)

        try:
            entries = list(os.scandir(profile.parent))
        except FileNotFoundError as e:
            raise GenerationError(f"Profile directory {profile.parent} not found") from e

        generations = []
        for entry in entries:
            match = pattern.match(entry.name)
            if not match:
                continue
            link = Path(entry.path)
            generations.append(
                describe(link, int(match.group(1)), _is_current(link, current))
            )
        logger.debug("Found %d generations of %s", len(generations), profile)
        return generations

    def find_previous(self, profile: Path) -> GenerationInfo:
        return generation_selection.find_previous(self.list(profile))

    def find_by_number(self, profile: Path, number: int) -> GenerationInfo:
        return generation_selection.find_by_number(self.list(profile), number)

    def current_number(self, profile: Path) -> int:
        return generation_selection.current_generation(self.list(profile)).number

    async def repoint(self, profile: Path, target: Path, elevate: bool) -> None:
        profile = Path(profile)
        staging = profile.with_name(f".{profile.name}.tmp-{os.getpid()}")
        await self.runner.run(
            Command.of("ln", ["-sfn", target, staging])
            .elevated(elevate)
            .with_message(f"Setting profile {profile.name} to {Path(target).name}")
        )
        await self.runner.run(
            Command.of("mv", ["-T", staging, profile]).elevated(elevate)
        )
