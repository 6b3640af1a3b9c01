"""Tests for backup creation, restore and dependency-aware rollback"""

import json

import pytest

from context_deploy.api.exceptions import RecoveryFailure
from context_deploy.services.backup_service import BackupService, dependency_closure

COMPONENTS = ["settings", "project-settings", "mcp-config"]


@pytest.fixture
def service(tmp_path, clock):
    return BackupService(tmp_path / "backups", clock=clock)


@pytest.fixture
def existing_files(workspace, platform_dir):
    """Claude Code settings, project settings and MCP config on disk"""
    files = {
        "settings": platform_dir / "settings.json",
        "project-settings": workspace / ".claude" / "settings.json",
        "mcp-config": workspace / ".mcp.json",
    }
    for component, path in files.items():
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps({"component": component, "version": 1}))
    return files


def clobber(files):
    for path in files.values():
        path.write_text('{"clobbered": true}')


class TestCreate:

    @pytest.mark.asyncio
    async def test_backup_records_files_and_checksums(self, service, claude_options, existing_files):
        result = await service.create_backup("deploy-1", claude_options(), COMPONENTS)

        assert result.success
        assert result.file_count == 3
        manifest = await service.load_manifest(result.backup_id)
        assert manifest.deployment_id == "deploy-1"
        assert set(manifest.checksums) == {str(p) for p in existing_files.values()}
        assert (await service.verify_backup(result.backup_id)).is_valid

    @pytest.mark.asyncio
    async def test_missing_files_are_warnings(self, service, claude_options):
        result = await service.create_backup("deploy-1", claude_options(), ["settings"])

        assert result.success
        assert result.file_count == 0
        assert result.warnings
        assert result.manifest.missing_files["settings"]

    @pytest.mark.asyncio
    async def test_manifest_is_camel_case(self, service, claude_options, existing_files):
        result = await service.create_backup("deploy-1", claude_options(), COMPONENTS)
        data = json.loads((result.backup_path / "manifest.json").read_text())
        assert {"backupId", "deploymentId", "files", "checksums", "missingFiles"} <= set(data)


class TestRestore:

    @pytest.mark.asyncio
    async def test_restore_roundtrip(self, service, claude_options, existing_files):
        originals = {c: p.read_text() for c, p in existing_files.items()}
        backup = await service.create_backup("deploy-1", claude_options(), COMPONENTS)
        clobber(existing_files)

        result = await service.restore_from_backup(backup.backup_id)

        assert result.success
        assert not result.partial
        assert len(result.restored_files) == 3
        assert {c: p.read_text() for c, p in existing_files.items()} == originals

    @pytest.mark.asyncio
    async def test_partial_restore_still_succeeds(self, service, claude_options, existing_files):
        backup = await service.create_backup("deploy-1", claude_options(), COMPONENTS)
        clobber(existing_files)

        mcp_entry = next(f for f in backup.manifest.files if f.component == "mcp-config")
        (backup.backup_path / mcp_entry.relative_path).write_text("tampered")

        result = await service.restore_from_backup(backup.backup_id)

        assert result.success
        assert result.partial
        assert len(result.restored_files) == 2
        assert result.failed_files == [str(existing_files["mcp-config"])]
        assert existing_files["mcp-config"].read_text() == '{"clobbered": true}'
        assert any("Partial restore" in w for w in result.warnings)

    @pytest.mark.asyncio
    async def test_restore_fails_when_nothing_restored(self, service, claude_options, existing_files):
        backup = await service.create_backup("deploy-1", claude_options(), ["settings"])
        for entry in backup.manifest.files:
            (backup.backup_path / entry.relative_path).unlink()

        result = await service.restore_from_backup(backup.backup_id)
        assert not result.success
        assert result.errors

    @pytest.mark.asyncio
    async def test_restore_removes_files_created_after_backup(self, service, claude_options, workspace):
        backup = await service.create_backup("deploy-1", claude_options(), ["mcp-config"])
        created = workspace / ".mcp.json"
        created.write_text("{}")

        result = await service.restore_from_backup(backup.backup_id)

        assert result.success
        assert not created.exists()
        assert result.removed_files == [str(created)]

    @pytest.mark.asyncio
    async def test_unknown_backup(self, service):
        with pytest.raises(RecoveryFailure):
            await service.restore_from_backup("backup-missing")


class TestRollback:

    def test_dependency_closure(self):
        assert dependency_closure("agents") == ["agents", "settings"]
        assert dependency_closure("mcp-config") == ["mcp-config"]

    @pytest.mark.asyncio
    async def test_rollback_includes_dependencies(self, service, claude_options, existing_files, platform_dir):
        agents = platform_dir / "agents" / "agents.json"
        agents.parent.mkdir(parents=True)
        agents.write_text('{"agents": []}')
        components = ["settings", "agents", "mcp-config"]

        backup = await service.create_backup("deploy-1", claude_options(), components)
        clobber(existing_files)
        agents.write_text("{}")

        result = await service.rollback_with_dependencies(backup.backup_id, "agents", components)

        assert result.components == ["agents", "settings"]
        assert agents.read_text() == '{"agents": []}'
        assert json.loads(existing_files["settings"].read_text())["component"] == "settings"
        assert existing_files["mcp-config"].read_text() == '{"clobbered": true}'


class TestListing:

    @pytest.mark.asyncio
    async def test_list_and_cleanup(self, service, claude_options, existing_files, clock):
        ids = []
        for _ in range(3):
            ids.append((await service.create_backup("d", claude_options(), ["settings"])).backup_id)
            clock.advance(minutes=1)

        listed = await service.list_backups()
        assert [b.backup_id for b in listed] == list(reversed(ids))

        cleanup = await service.cleanup_backups(keep_count=1)
        assert cleanup.cleaned == 2
        assert [b.backup_id for b in await service.list_backups()] == [ids[-1]]

    @pytest.mark.asyncio
    async def test_verify_detects_tampering(self, service, claude_options, existing_files):
        backup = await service.create_backup("d", claude_options(), ["settings"])
        (backup.backup_path / backup.manifest.files[0].relative_path).write_text("x")

        check = await service.verify_backup(backup.backup_id)
        assert not check.is_valid
