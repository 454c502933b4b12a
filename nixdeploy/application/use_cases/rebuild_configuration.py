"""
Rebuild Configuration Use Case

Architectural Intent:
- Orchestrates one rebuild as a strictly sequential pipeline:
  resolve installable -> build -> specialisation -> diff -> confirm
  -> copy to target -> activate -> register boot default
- Progress is recorded on a Deployment aggregate, which rejects any
  out-of-order stage
- The build output link stays alive until the last stage that reads it
- Platform specifics (NixOS, Home-Manager) come from a Platform object

Failure Semantics:
- Resolution, build and activation failures abort the pipeline
- Diff failures abort on strict platforms and are logged otherwise
- A negative confirmation aborts before anything is activated
"""

from __future__ import annotations
import logging

from nixdeploy.application.platforms import (
    DiffMode,
    Platform,
    RebuildRequest,
    RebuildVariant,
    resolve_specialisation,
    specialised,
)
from nixdeploy.domain.entities.deployment import Deployment, RebuildStage
from nixdeploy.domain.errors import (
    ActivationError,
    CommandFailedError,
    NixDeployError,
    UserRejectedError,
)
from nixdeploy.domain.ports.command_runner_port import CommandRunnerPort
from nixdeploy.domain.ports.confirmation_port import ConfirmationPort
from nixdeploy.domain.ports.diff_port import DiffPort
from nixdeploy.domain.ports.nix_port import NixPort
from nixdeploy.domain.services.installable_resolution import resolve_against_tree
from nixdeploy.infrastructure.config import HostContext
from nixdeploy.infrastructure.out_link import OutputLink

logger = logging.getLogger(__name__)


class RebuildConfiguration:
    def __init__(
        self,
        nix_port: NixPort,
        diff_port: DiffPort,
        runner: CommandRunnerPort,
        confirmation: ConfirmationPort,
        context: HostContext,
    ):
        self.nix_port = nix_port
        self.diff_port = diff_port
        self.runner = runner
        self.confirmation = confirmation
        self.context = context

    async def execute(self, platform: Platform, request: RebuildRequest) -> Deployment:
        if request.variant not in platform.variants:
            raise ValueError(
                f"{platform.name} does not support {request.variant.value}"
            )
        if request.target_host is not None and not platform.remote_activation:
            raise NixDeployError(
                f"{platform.name} configurations cannot be deployed to a remote host"
            )

        deployment = Deployment(variant=request.variant.value)
        try:
            with OutputLink.create(request.out_link, platform.temp_prefix) as out:
                deployment = await self._run(platform, request, deployment, out)
        except NixDeployError as e:
            deployment = deployment.fail(str(e))
            logger.debug("Rebuild failed: %r", deployment)
            raise
        return deployment

    async def _run(
        self,
        platform: Platform,
        request: RebuildRequest,
        deployment: Deployment,
        out: OutputLink,
    ) -> Deployment:
        elevate = platform.elevate(self.context, request.bypass_root_check)
        logger.debug("Output link: %r", out)

        deployment = deployment.advance(RebuildStage.RESOLVE_INSTALLABLE)
        installable = await resolve_against_tree(
            request.installable,
            self.nix_port,
            platform.config_type,
            extra_path=platform.attribute_tail(request.variant, request.with_bootloader),
            explicit_name=platform.configuration_name(self.context, request.configuration),
            user=self.context.user,
            hostname=self.context.hostname,
            push_drv=True,
            extra_args=request.extra_args,
        )

        deployment = deployment.advance(RebuildStage.BUILD)
        message = (
            f"Building {platform.name} VM image"
            if request.variant is RebuildVariant.BUILD_VM
            else f"Building {platform.name} configuration"
        )
        await self.nix_port.build(
            installable,
            out.path,
            extra_args=request.extra_args,
            builder=request.build_host,
            message=message,
        )

        deployment = deployment.advance(RebuildStage.RESOLVE_SPECIALISATION)
        specialisation = resolve_specialisation(
            request.no_specialisation,
            request.specialisation,
            None if request.no_specialisation else platform.specialisation_marker(self.context),
        )
        logger.debug("Target specialisation: %s", specialisation)
        target = specialised(out.path, specialisation)

        deployment = deployment.advance(RebuildStage.DIFF)
        await self._diff(platform, request, target)

        if request.dry or request.variant.build_only:
            if request.ask:
                reason = (
                    "dry run was requested" if request.dry
                    else f"{request.variant.value} does not activate"
                )
                logger.warning("--ask has no effect as %s", reason)
            return deployment.complete()

        deployment = deployment.advance(RebuildStage.CONFIRM)
        if request.ask:
            if not await self.confirmation.confirm("Apply the config?"):
                raise UserRejectedError()

        host = request.target_host
        if host is not None:
            deployment = deployment.advance(RebuildStage.COPY_REMOTE)
            await self.nix_port.copy_closure(out.resolve(), host)

        plan = platform.plan(request.variant)
        if plan.activate is not None:
            deployment = deployment.advance(RebuildStage.ACTIVATE)
            await self._activate(
                platform, target, plan.activate, elevate, host, "Activating configuration"
            )

        boot_profile = platform.boot_profile()
        if plan.register_boot and boot_profile is not None:
            deployment = deployment.advance(RebuildStage.REGISTER_BOOT)
            await self.nix_port.set_profile(boot_profile, out.resolve(), elevate, host)
            await self._activate(
                platform, out.path, "boot", elevate, host,
                "Adding configuration to bootloader",
            )

        logger.debug("Completed operation with output path: %s", out.path)
        return deployment.complete()

    async def _diff(self, platform: Platform, request: RebuildRequest, target) -> None:
        if request.diff is DiffMode.NEVER:
            logger.debug("Skipping configuration comparison")
            return
        if request.diff is DiffMode.AUTO and platform.skip_compare(
            self.context, request.configuration
        ):
            logger.debug("Skipping comparison: target is not the local host")
            return

        baseline = platform.diff_baseline(self.context)
        if baseline is None:
            logger.debug("No previous generation to compare against")
            return

        try:
            await self.diff_port.diff(baseline, target, "Comparing changes")
        except CommandFailedError as e:
            if platform.strict_diff:
                raise
            logger.warning("Failed to compare configurations: %s", e)

    async def _activate(self, platform, target, mode, elevate, host, message) -> None:
        cmd = (
            platform.activation_command(target, mode, self.context)
            .elevated(elevate)
            .on_host(host)
            .with_message(message)
        )
        try:
            await self.runner.run(cmd)
        except ActivationError:
            raise
        except CommandFailedError as e:
            raise ActivationError(e.command, e.exit_status, "Activation failed") from e
