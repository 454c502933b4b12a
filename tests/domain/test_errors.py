"""Tests for the error hierarchy."""

from nixdeploy.domain.errors import (
    ActivationError,
    BuildError,
    CommandFailedError,
    NixDeployError,
    ProfileRevertError,
    ResolutionError,
    UserRejectedError,
)


class TestErrors:
    def test_resolution_error_lists_attempts(self):
        err = ResolutionError("Couldn't find configuration", [".#a", ".#b"])
        assert err.attempted == (".#a", ".#b")
        assert str(err) == "Couldn't find configuration, tried: .#a, .#b"

    def test_command_failed_carries_status(self):
        err = CommandFailedError(["nvd", "diff"], 3, "Comparing changes")
        assert err.exit_status == 3
        assert err.command == ("nvd", "diff")
        assert str(err) == "Comparing changes: command exited with status 3"

    def test_spawn_failure(self):
        err = CommandFailedError(["nom"], None)
        assert err.exit_status is None
        assert str(err) == "Failed to spawn nom"

    def test_hierarchy(self):
        assert issubclass(BuildError, CommandFailedError)
        assert issubclass(ActivationError, CommandFailedError)
        assert issubclass(CommandFailedError, NixDeployError)
        assert issubclass(UserRejectedError, NixDeployError)

    def test_user_rejected_default_message(self):
        assert str(UserRejectedError()) == "User rejected the new config"

    def test_profile_revert_keeps_both(self):
        activation = ActivationError(["switch"], 1)
        revert = CommandFailedError(["mv"], 1)
        err = ProfileRevertError(activation, revert)
        assert err.activation_error is activation
        assert err.revert_error is revert
