"""
Profile Port

Architectural Intent:
- Port interface for reading the generations of a profile and repointing it
- Listing is a pure directory read; repointing is the only persistent mutation
  and must be an atomic symlink replace
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

from nixdeploy.domain.value_objects.generation import GenerationInfo


class ProfilePort(ABC):
    @abstractmethod
    def list(self, profile: Path) -> List[GenerationInfo]:
        """Generations of profile in discovery order."""
        pass

    @abstractmethod
    def find_previous(self, profile: Path) -> GenerationInfo:
        pass

    @abstractmethod
    def find_by_number(self, profile: Path, number: int) -> GenerationInfo:
        pass

    @abstractmethod
    def current_number(self, profile: Path) -> int:
        pass

    @abstractmethod
    async def repoint(self, profile: Path, target: Path, elevate: bool) -> None:
        """Atomically replace the profile symlink so it points at target."""
        pass
