"""CLI and synchronous facade tests"""

import json

import pytest
from click.testing import CliRunner

from context_deploy import Deployer, deploy
from context_deploy.api.exceptions import ValidationError
from context_deploy.cli.main import cli
from context_deploy.constants import ENV_CONFIG_PATH, ENV_HOME
from context_deploy.utils.async_utils import run_async


@pytest.fixture
def home(tmp_path, monkeypatch):
    path = tmp_path / "home"
    monkeypatch.setenv(ENV_HOME, str(path))
    monkeypatch.delenv(ENV_CONFIG_PATH, raising=False)
    path.mkdir()
    (path / "config.yaml").write_text("fetch_retry_delay: 0\n")
    return path


@pytest.fixture
def bundle(tmp_path):
    path = tmp_path / "bundle.json"
    path.write_text(json.dumps({"content": {"settings": {"fontSize": 14}, "ai-config": "Use type hints"}}))
    return path


def invoke(*args):
    return CliRunner().invoke(cli, list(args), catch_exceptions=False)


class TestDeployer:

    def test_deploy_context(self, home, workspace, platform_dir):
        deployer = Deployer()

        result = deployer.deploy(
            {"settings": {"fontSize": 14}},
            platform="claude-code",
            workspace_path=workspace,
            platform_path=platform_dir,
        )

        assert result.success
        assert deployer.config.home == home
        assert [b.backup_id for b in deployer.list_backups()] == [result.backup_id]
        assert deployer.verify_backup(result.backup_id).is_valid

    def test_platform_is_required(self, home):
        with pytest.raises(ValidationError):
            Deployer().deploy({"settings": {}})

    def test_module_level_deploy_needs_one_source(self, home):
        with pytest.raises(ValueError):
            deploy()
        with pytest.raises(ValueError):
            deploy(context={}, bundle="bundle.json")

    def test_release_locks_by_scope(self, home, workspace):
        deployer = Deployer()
        manager = deployer.service.lock_manager

        async def hold():
            await manager.acquire_lock(f"{workspace}#cursor")
            await manager.acquire_lock("/elsewhere#cursor")

        run_async(hold())

        assert deployer.release_locks(str(workspace)) == 1
        assert [lock.resource for lock in deployer.list_locks()] == ["/elsewhere#cursor"]


class TestCli:

    def test_help(self):
        result = invoke("--help")
        assert result.exit_code == 0
        assert "deploy" in result.output

    def test_deploy_bundle(self, home, bundle, workspace, platform_dir):
        result = invoke("deploy", str(bundle), "--platform", "claude-code",
                        "--workspace", str(workspace), "--platform-path", str(platform_dir))

        assert result.exit_code == 0, result.output
        assert json.loads((platform_dir / "settings.json").read_text()) == {"fontSize": 14}
        assert (workspace / "CLAUDE.md").read_text() == "Use type hints\n"

    def test_dry_run_writes_nothing(self, home, bundle, workspace, platform_dir):
        result = invoke("deploy", str(bundle), "--platform", "claude-code", "--dry-run",
                        "--workspace", str(workspace), "--platform-path", str(platform_dir))

        assert result.exit_code == 0, result.output
        assert not (platform_dir / "settings.json").exists()

    def test_rejected_bundle_exits_nonzero(self, home, tmp_path, workspace, platform_dir):
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps({"commands": {"x": "sudo rm -rf /"}}))

        result = invoke("deploy", str(bad), "--platform", "claude-code",
                        "--workspace", str(workspace), "--platform-path", str(platform_dir))

        assert result.exit_code == 1
        assert "CD002" in result.output

    def test_missing_bundle_exits_nonzero(self, home, tmp_path, platform_dir):
        result = invoke("deploy", str(tmp_path / "nope.json"), "--platform", "claude-code",
                        "--platform-path", str(platform_dir))
        assert result.exit_code == 1

    def test_backups_list_after_deploy(self, home, bundle, workspace, platform_dir):
        invoke("deploy", str(bundle), "--platform", "claude-code",
               "--workspace", str(workspace), "--platform-path", str(platform_dir))

        result = invoke("backups", "list")

        assert result.exit_code == 0
        assert "deploy-" in result.output

    def test_recover_with_nothing_interrupted(self, home):
        result = invoke("recover")
        assert result.exit_code == 0

    def test_locks_cleanup(self, home):
        result = invoke("locks", "cleanup")
        assert result.exit_code == 0
        assert "No stale locks" in result.output
