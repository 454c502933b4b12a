"""Tests for the composition root."""

from nixdeploy.application.use_cases.rebuild_configuration import RebuildConfiguration
from nixdeploy.application.use_cases.rollback_generation import RollbackGeneration
from nixdeploy.composition_root import NixDeployContainer, create_container
from nixdeploy.infrastructure.config import HostContext, NixDeployConfig, SudoConfig, BuildConfig


class TestCompositionRoot:
    def test_wiring(self):
        context = HostContext(user="me", home="/home/me", hostname="laptop", uid=1000)
        config = NixDeployConfig(
            sudo=SudoConfig(askpass="/bin/ask"), build=BuildConfig(nom=False)
        )

        container = create_container(config=config, context=context)

        assert isinstance(container, NixDeployContainer)
        assert isinstance(container.rebuild, RebuildConfiguration)
        assert isinstance(container.rollback, RollbackGeneration)
        assert container.runner.askpass == "/bin/ask"
        assert container.nix_adapter.use_nom is False
        assert container.rebuild.nix_port is container.nix_adapter
        assert container.rollback.profiles is container.registry
        assert container.rebuild.context is context
