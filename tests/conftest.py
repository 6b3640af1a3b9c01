"""Shared fixtures for context-deploy tests"""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from context_deploy.constants import Platform
from context_deploy.models import DeployOptions, EngineConfig


class FakeClock:
    """Manually advanced UTC clock"""

    def __init__(self, start: datetime = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine_config(tmp_path: Path) -> EngineConfig:
    return EngineConfig.for_home(tmp_path / "home", lock_poll_interval=0.01, fetch_retry_delay=0.0)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    path = tmp_path / "ws"
    path.mkdir()
    return path


@pytest.fixture
def platform_dir(tmp_path: Path) -> Path:
    path = tmp_path / "claude"
    path.mkdir()
    return path


@pytest.fixture
def claude_options(workspace: Path, platform_dir: Path):
    """Factory for Claude Code deploy options rooted in tmp_path"""

    def make(**overrides) -> DeployOptions:
        values = dict(
            platform=Platform.CLAUDE_CODE,
            workspace_path=workspace,
            platform_path=platform_dir,
        )
        values.update(overrides)
        return DeployOptions(**values)

    return make
