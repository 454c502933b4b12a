"""
Rollback Generation Use Case

Architectural Intent:
- Switches the system profile back to an older generation and activates it
- Stages: select target -> diff -> confirm -> repoint profile -> activate
- The current generation number is recorded before the profile is touched;
  if activation fails the profile is pointed back at it, so the profile never
  stays on a generation whose activation did not succeed
"""

from __future__ import annotations
import logging
from pathlib import Path
from typing import Optional

from nixdeploy.application.platforms import (
    DiffMode,
    RollbackRequest,
    check_not_root,
    resolve_specialisation,
    specialised,
)
from nixdeploy.domain.errors import (
    ActivationError,
    CommandFailedError,
    GenerationError,
    ProfileRevertError,
    UserRejectedError,
)
from nixdeploy.domain.ports.command_runner_port import CommandRunnerPort
from nixdeploy.domain.ports.confirmation_port import ConfirmationPort
from nixdeploy.domain.ports.diff_port import DiffPort
from nixdeploy.domain.ports.profile_port import ProfilePort
from nixdeploy.domain.value_objects.command import Command
from nixdeploy.domain.value_objects.generation import GenerationInfo, generation_link
from nixdeploy.infrastructure.config import HostContext, OsConfig

logger = logging.getLogger(__name__)


class RollbackGeneration:
    def __init__(
        self,
        profiles: ProfilePort,
        diff_port: DiffPort,
        runner: CommandRunnerPort,
        confirmation: ConfirmationPort,
        context: HostContext,
        config: OsConfig,
    ):
        self.profiles = profiles
        self.diff_port = diff_port
        self.runner = runner
        self.confirmation = confirmation
        self.context = context
        self.config = config

    @property
    def profile(self) -> Path:
        return Path(self.config.system_profile)

    async def execute(self, request: RollbackRequest) -> GenerationInfo:
        elevate = check_not_root(self.context, request.bypass_root_check)

        if request.to is not None:
            target = self.profiles.find_by_number(self.profile, request.to)
        else:
            target = self.profiles.find_previous(self.profile)
        logger.info("Rolling back to generation %d", target.number)

        specialisation = resolve_specialisation(
            request.no_specialisation,
            request.specialisation,
            Path(self.config.specialisation_marker),
        )

        if request.diff is not DiffMode.NEVER:
            await self.diff_port.diff(
                Path(self.config.current_profile), target.link, "Comparing changes"
            )

        if request.dry:
            if request.ask:
                logger.warning("--ask has no effect as dry run was requested")
            logger.info("Dry run: would roll back to generation %d", target.number)
            return target

        if request.ask and not await self.confirmation.confirm("Roll back?"):
            raise UserRejectedError()

        previous = self._current_number()

        await self.profiles.repoint(self.profile, target.link, elevate)

        switch = specialised(target.link, specialisation) / "bin" / "switch-to-configuration"
        activation = (
            Command.of(switch, ["switch"])
            .elevated(elevate)
            .with_message("Activating configuration")
        )
        try:
            await self.runner.run(activation)
        except CommandFailedError as e:
            error = ActivationError(
                e.command, e.exit_status, "Failed to activate configuration"
            )
            await self._revert(previous, elevate, error)
            raise error from e

        logger.info("Successfully rolled back to generation %d", target.number)
        return target

    def _current_number(self) -> Optional[int]:
        try:
            return self.profiles.current_number(self.profile)
        except GenerationError as e:
            logger.warning("Failed to get current generation number: %s", e)
            return None

    async def _revert(
        self, previous: Optional[int], elevate: bool, error: ActivationError
    ) -> None:
        if previous is None:
            logger.warning("Previous generation unknown, leaving the profile as is")
            return
        logger.warning("Activation failed, restoring generation %d", previous)
        try:
            await self.profiles.repoint(
                self.profile, generation_link(self.profile, previous), elevate
            )
        except CommandFailedError as revert_error:
            raise ProfileRevertError(error, revert_error) from error
