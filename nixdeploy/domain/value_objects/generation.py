from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple


@dataclass(frozen=True)
class GenerationInfo:
    """
    Value Object describing one generation link of a profile.

    ``link`` is the ``{profile}-{number}-link`` entry, ``path`` the snapshot
    it resolves to.
    """
    number: int
    link: Path
    path: Path
    current: bool = False
    created: Optional[datetime] = None
    nixos_version: Optional[str] = None
    kernel_version: Optional[str] = None
    specialisations: Tuple[str, ...] = ()

    def __post_init__(self):
        if self.number < 0:
            raise ValueError(f"Generation number must be non-negative: {self.number}")

    def __str__(self):
        marker = " (current)" if self.current else ""
        return f"generation {self.number}{marker}"


def generation_link(profile: Path, number: int) -> Path:
    """The ``{profile}-{number}-link`` entry next to profile."""
    return profile.parent / f"{profile.name}-{number}-link"
