"""Tests for GenerationRegistry."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from nixdeploy.domain.errors import GenerationError
from nixdeploy.infrastructure.adapters.generation_registry import GenerationRegistry


def make_profiles(root, numbers, current):
    """Lay out {root}/profiles/system-N-link -> store/N and system -> current link."""
    profiles = root / "profiles"
    profiles.mkdir()
    for n in numbers:
        snapshot = root / "store" / f"{n}-nixos-system"
        (snapshot / "specialisation" / "gaming").mkdir(parents=True)
        (snapshot / "nixos-version").write_text(f"24.05.{n}\n")
        modules = snapshot / "kernel-modules" / "lib" / "modules" / "6.6.1"
        modules.mkdir(parents=True)
        (profiles / f"system-{n}-link").symlink_to(snapshot)
    (profiles / "system").symlink_to(f"system-{current}-link")
    (profiles / "unrelated-3-link").symlink_to(root)
    return profiles / "system"


class TestList:
    def test_discovers_generations(self, tmp_path):
        profile = make_profiles(tmp_path, [1, 2, 10], current=2)
        generations = GenerationRegistry(AsyncMock()).list(profile)

        by_number = {g.number: g for g in generations}
        assert set(by_number) == {1, 2, 10}
        assert [g.number for g in generations if g.current] == [2]
        assert by_number[10].nixos_version == "24.05.10"
        assert by_number[10].kernel_version == "6.6.1"
        assert by_number[10].specialisations == ("gaming",)
        assert by_number[10].created is not None

    def test_find_previous(self, tmp_path):
        profile = make_profiles(tmp_path, [1, 2, 10], current=10)
        registry = GenerationRegistry(AsyncMock())
        assert registry.find_previous(profile).number == 2
        assert registry.current_number(profile) == 10

    def test_find_by_number(self, tmp_path):
        profile = make_profiles(tmp_path, [1, 2], current=2)
        registry = GenerationRegistry(AsyncMock())
        assert registry.find_by_number(profile, 1).link.name == "system-1-link"
        with pytest.raises(GenerationError):
            registry.find_by_number(profile, 9)

    def test_missing_directory(self, tmp_path):
        with pytest.raises(GenerationError):
            GenerationRegistry(AsyncMock()).list(tmp_path / "nope" / "system")

    def test_profile_pointing_at_store_path(self, tmp_path):
        profile = make_profiles(tmp_path, [1, 2], current=2)
        profile.unlink()
        profile.symlink_to(tmp_path / "store" / "1-nixos-system")
        generations = GenerationRegistry(AsyncMock()).list(profile)
        assert [g.number for g in generations if g.current] == [1]


class TestRepoint:
    @pytest.mark.asyncio
    async def test_link_then_rename(self, tmp_path):
        runner = AsyncMock()
        profile = tmp_path / "system"
        target = tmp_path / "system-4-link"

        await GenerationRegistry(runner).repoint(profile, target, True)

        link, move = [call.args[0] for call in runner.run.await_args_list]
        staging = link.args[2]
        assert link.argv[:3] == ("ln", "-sfn", str(target))
        assert Path(staging).parent == tmp_path
        assert move.argv == ("mv", "-T", staging, str(profile))
        assert link.elevate and move.elevate
