"""Tests for NvdDiffAdapter."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from nixdeploy.infrastructure.adapters.nvd_adapter import NvdDiffAdapter


class TestNvdDiffAdapter:
    @pytest.mark.asyncio
    async def test_diff(self):
        runner = AsyncMock()
        await NvdDiffAdapter(runner).diff(
            Path("/run/current-system"), Path("/tmp/result"), "Comparing changes"
        )
        cmd = runner.run.await_args.args[0]
        assert cmd.argv == ("nvd", "diff", "/run/current-system", "/tmp/result")
        assert cmd.message == "Comparing changes"
