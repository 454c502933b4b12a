"""Tests for RollbackGeneration use case."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from nixdeploy.application.platforms import DiffMode, RollbackRequest
from nixdeploy.application.use_cases.rollback_generation import RollbackGeneration
from nixdeploy.domain.errors import (
    ActivationError,
    CommandFailedError,
    GenerationError,
    ProfileRevertError,
    RootNotAllowedError,
    UserRejectedError,
)
from nixdeploy.domain.value_objects.generation import GenerationInfo
from nixdeploy.infrastructure.config import HostContext, OsConfig

PROFILE = Path("/nix/var/nix/profiles/system")


def gen(number, current=False):
    return GenerationInfo(
        number=number,
        link=PROFILE.parent / f"system-{number}-link",
        path=Path(f"/nix/store/{number}-nixos-system"),
        current=current,
    )


@pytest.fixture
def config(tmp_path):
    return OsConfig(
        system_profile=str(PROFILE),
        current_profile="/run/current-system",
        specialisation_marker=str(tmp_path / "no-marker"),
    )


def make_use_case(config, confirm=True, uid=1000):
    profiles = MagicMock()
    profiles.find_previous.return_value = gen(41)
    profiles.find_by_number.side_effect = lambda profile, n: gen(n)
    profiles.current_number.return_value = 42
    profiles.repoint = AsyncMock()
    diff = AsyncMock()
    runner = AsyncMock()
    confirmation = AsyncMock()
    confirmation.confirm = AsyncMock(return_value=confirm)
    use_case = RollbackGeneration(
        profiles, diff, runner, confirmation, HostContext(user="me", uid=uid), config
    )
    return use_case, profiles, diff, runner


class TestRollback:
    @pytest.mark.asyncio
    async def test_rollback_to_previous(self, config):
        use_case, profiles, diff, runner = make_use_case(config)

        target = await use_case.execute(RollbackRequest())

        assert target.number == 41
        diff.diff.assert_awaited_once_with(
            Path("/run/current-system"), gen(41).link, "Comparing changes"
        )
        profiles.repoint.assert_awaited_once_with(PROFILE, gen(41).link, True)
        activation = runner.run.await_args.args[0]
        assert activation.argv == (
            str(gen(41).link / "bin" / "switch-to-configuration"), "switch",
        )
        assert activation.elevate

    @pytest.mark.asyncio
    async def test_rollback_to_number(self, config):
        use_case, profiles, _, _ = make_use_case(config)

        target = await use_case.execute(RollbackRequest(to=7))

        assert target.number == 7
        profiles.find_by_number.assert_called_once_with(PROFILE, 7)
        profiles.find_previous.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_generation(self, config):
        use_case, profiles, _, runner = make_use_case(config)
        profiles.find_previous.side_effect = GenerationError("No generation older")

        with pytest.raises(GenerationError):
            await use_case.execute(RollbackRequest())
        profiles.repoint.assert_not_awaited()
        runner.run.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_specialisation(self, config):
        use_case, _, _, runner = make_use_case(config)

        await use_case.execute(RollbackRequest(specialisation="gaming"))

        program = runner.run.await_args.args[0].program
        assert program == str(
            gen(41).link / "specialisation" / "gaming" / "bin" / "switch-to-configuration"
        )

    @pytest.mark.asyncio
    async def test_dry_run_changes_nothing(self, config):
        use_case, profiles, diff, runner = make_use_case(config)

        await use_case.execute(RollbackRequest(dry=True))

        diff.diff.assert_awaited_once()
        profiles.repoint.assert_not_awaited()
        runner.run.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_dry_run_ignores_ask_with_warning(self, config, caplog):
        use_case, profiles, _, runner = make_use_case(config)

        await use_case.execute(
            RollbackRequest(dry=True, ask=True, diff=DiffMode.NEVER)
        )

        use_case.confirmation.confirm.assert_not_awaited()
        profiles.repoint.assert_not_awaited()
        assert "--ask has no effect as dry run was requested" in caplog.text

    @pytest.mark.asyncio
    async def test_diff_never(self, config):
        use_case, _, diff, _ = make_use_case(config)
        await use_case.execute(RollbackRequest(diff=DiffMode.NEVER))
        diff.diff.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rejected(self, config):
        use_case, profiles, _, runner = make_use_case(config, confirm=False)

        with pytest.raises(UserRejectedError):
            await use_case.execute(RollbackRequest(ask=True))
        profiles.repoint.assert_not_awaited()
        runner.run.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_root_refused(self, config):
        use_case, profiles, _, _ = make_use_case(config, uid=0)
        with pytest.raises(RootNotAllowedError):
            await use_case.execute(RollbackRequest())
        profiles.repoint.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_bypass_root_check_runs_unelevated(self, config):
        use_case, profiles, _, runner = make_use_case(config, uid=0)

        await use_case.execute(RollbackRequest(bypass_root_check=True))

        assert profiles.repoint.await_args.args[2] is False
        assert not runner.run.await_args.args[0].elevate


class TestRollbackRevert:
    @pytest.mark.asyncio
    async def test_activation_failure_reverts_profile(self, config):
        use_case, profiles, _, runner = make_use_case(config)
        runner.run = AsyncMock(side_effect=CommandFailedError(["switch"], 1))

        with pytest.raises(ActivationError) as exc_info:
            await use_case.execute(RollbackRequest())

        assert isinstance(exc_info.value.__cause__, CommandFailedError)
        assert profiles.repoint.await_args_list[0].args == (PROFILE, gen(41).link, True)
        assert profiles.repoint.await_args_list[1].args == (PROFILE, gen(42).link, True)

    @pytest.mark.asyncio
    async def test_unknown_prior_generation_skips_revert(self, config, caplog):
        use_case, profiles, _, runner = make_use_case(config)
        profiles.current_number.side_effect = GenerationError("Current generation not found")
        runner.run = AsyncMock(side_effect=CommandFailedError(["switch"], 1))

        with pytest.raises(ActivationError):
            await use_case.execute(RollbackRequest())

        profiles.repoint.assert_awaited_once()
        assert "Failed to get current generation number" in caplog.text

    @pytest.mark.asyncio
    async def test_failed_revert(self, config):
        use_case, profiles, _, runner = make_use_case(config)
        runner.run = AsyncMock(side_effect=CommandFailedError(["switch"], 1))
        profiles.repoint = AsyncMock(
            side_effect=[None, CommandFailedError(["mv"], 1)]
        )

        with pytest.raises(ProfileRevertError) as exc_info:
            await use_case.execute(RollbackRequest())

        assert isinstance(exc_info.value.activation_error, ActivationError)
        assert isinstance(exc_info.value.revert_error, CommandFailedError)
