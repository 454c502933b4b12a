"""
Generation Selection Service

Architectural Intent:
- Pure functions choosing a generation out of a profile listing
- Listings arrive in discovery order; ordering by number happens here
"""

from typing import Iterable, List

from nixdeploy.domain.errors import GenerationError
from nixdeploy.domain.value_objects.generation import GenerationInfo


def sort_generations(generations: Iterable[GenerationInfo]) -> List[GenerationInfo]:
    return sorted(generations, key=lambda g: g.number)


def find_previous(generations: Iterable[GenerationInfo]) -> GenerationInfo:
    """Return the generation immediately older than the current one."""
    ordered = sort_generations(generations)
    if not ordered:
        raise GenerationError("No generations found")

    current_idx = next((i for i, g in enumerate(ordered) if g.current), None)
    if current_idx is None:
        raise GenerationError("Current generation not found")
    if current_idx == 0:
        raise GenerationError("No generation older than the current one exists")

    return ordered[current_idx - 1]


def find_by_number(generations: Iterable[GenerationInfo], number: int) -> GenerationInfo:
    for generation in generations:
        if generation.number == number:
            return generation
    raise GenerationError(f"Generation {number} not found")


def current_generation(generations: Iterable[GenerationInfo]) -> GenerationInfo:
    for generation in generations:
        if generation.current:
            return generation
    raise GenerationError("Current generation not found")
