"""
List Generations Use Case

Architectural Intent:
- Lists the generations of a profile, oldest first, for display
"""

from pathlib import Path
from typing import List

from nixdeploy.domain.errors import GenerationError
from nixdeploy.domain.ports.profile_port import ProfilePort
from nixdeploy.domain.services.generation_selection import sort_generations
from nixdeploy.domain.value_objects.generation import GenerationInfo


class ListGenerations:
    def __init__(self, profiles: ProfilePort):
        self.profiles = profiles

    def execute(self, profile: Path) -> List[GenerationInfo]:
        profile = Path(profile)
        if not profile.is_symlink():
            raise GenerationError(f"No profile `{profile.name}` found")
        return sort_generations(self.profiles.list(profile))
