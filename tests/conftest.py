"""Shared fixtures and subprocess mocks for testing."""

from __future__ import annotations

import os
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from vcsflow.core.config import VcsflowConfig
from vcsflow.git.runner import GIT_CONFIG_OVERRIDES


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Prevent .env file and shell env from leaking into tests.

    VcsflowConfig.model_config has env_file=".env" which loads the project
    .env relative to cwd. Nullify it at the source.
    """
    monkeypatch.setitem(VcsflowConfig.model_config, "env_file", None)
    for key in list(os.environ):
        if key.startswith("VCSFLOW_"):
            monkeypatch.delenv(key, raising=False)


def make_proc(returncode=0, stdout="", stderr=""):
    """Create a mock subprocess result."""
    proc = AsyncMock()
    proc.returncode = returncode
    proc.pid = 4242
    proc.communicate = AsyncMock(return_value=(stdout.encode(), stderr.encode()))
    proc.kill = MagicMock()
    proc.wait = AsyncMock(return_value=returncode)
    return proc


def patch_subprocess(*procs):
    """Patch asyncio.create_subprocess_exec to return the given procs in order.

    A single proc is returned for every call.
    """
    if len(procs) == 1:
        return patch(
            "vcsflow.git.runner.asyncio.create_subprocess_exec",
            new_callable=AsyncMock,
            return_value=procs[0],
        )
    return patch(
        "vcsflow.git.runner.asyncio.create_subprocess_exec",
        new_callable=AsyncMock,
        side_effect=list(procs),
    )


def called_args(mock_exec, index=0):
    """Return the git argv (without the binary and config overrides) of the index-th spawn."""
    return list(mock_exec.call_args_list[index].args[1 + len(GIT_CONFIG_OVERRIDES) :])
