"""Tests for the file-based lock coordinator"""

import asyncio
import json
import os

import pytest

from context_deploy.api.exceptions import LockContentionError, LockOwnershipError
from context_deploy.core.lock_manager import LockManager, StalenessPolicy, process_alive
from context_deploy.models.lock import LockFileContent


def write_foreign_lock(manager: LockManager, resource: str, pid: int, timestamp) -> None:
    manager.lock_dir.mkdir(parents=True, exist_ok=True)
    content = LockFileContent(id="foreign", process_id=pid, timestamp=timestamp, resource=resource)
    manager.lock_path(resource).write_text(json.dumps(content.to_dict()))


@pytest.fixture
def lock_dir(tmp_path):
    return tmp_path / "locks"


@pytest.fixture
def manager(lock_dir, clock):
    return LockManager(lock_dir, StalenessPolicy(timeout=3600, liveness=lambda pid: True), 0.01, clock)


class TestAcquireRelease:

    @pytest.mark.asyncio
    async def test_acquire_writes_lock_file(self, manager):
        handle = await manager.acquire_lock("/ws#cursor")

        data = json.loads(handle.lock_path.read_text())
        assert data["id"] == handle.id
        assert data["processId"] == os.getpid()
        assert data["resource"] == "/ws#cursor"
        assert manager.is_locked("/ws#cursor")

        await manager.release_lock(handle)
        assert not handle.lock_path.exists()
        assert not manager.is_locked("/ws#cursor")

    @pytest.mark.asyncio
    async def test_second_acquire_is_refused(self, manager):
        await manager.acquire_lock("/ws#cursor")
        with pytest.raises(LockContentionError) as exc_info:
            await manager.acquire_lock("/ws#cursor")
        assert exc_info.value.resource == "/ws#cursor"

    @pytest.mark.asyncio
    async def test_distinct_resources_do_not_contend(self, manager):
        first = await manager.acquire_lock("/ws#cursor")
        second = await manager.acquire_lock("/ws#claude-code")
        assert first.lock_path != second.lock_path

    @pytest.mark.asyncio
    async def test_release_is_idempotent(self, manager):
        handle = await manager.acquire_lock("r")
        await manager.release_lock(handle)
        await manager.release_lock(handle)

    @pytest.mark.asyncio
    async def test_release_of_foreign_lock_fails(self, manager, clock):
        handle = await manager.acquire_lock("r")
        handle.lock_path.unlink()
        write_foreign_lock(manager, "r", 999999, clock())

        with pytest.raises(LockOwnershipError):
            await manager.release_lock(handle)
        assert handle.lock_path.exists()

    @pytest.mark.asyncio
    async def test_concurrent_acquire_has_single_winner(self, manager):
        results = await asyncio.gather(
            *(manager.acquire_lock("/ws#cursor") for _ in range(5)),
            return_exceptions=True,
        )
        winners = [r for r in results if not isinstance(r, Exception)]
        assert len(winners) == 1
        assert all(isinstance(r, LockContentionError) for r in results if r not in winners)


class TestStaleness:

    @pytest.mark.asyncio
    async def test_expired_lock_is_reclaimed(self, manager, clock):
        write_foreign_lock(manager, "r", 12345, clock())
        clock.advance(hours=2)

        handle = await manager.acquire_lock("r")
        assert json.loads(handle.lock_path.read_text())["id"] == handle.id

    @pytest.mark.asyncio
    async def test_dead_holder_is_reclaimed(self, lock_dir, clock):
        manager = LockManager(lock_dir, StalenessPolicy(timeout=3600, liveness=lambda pid: False), 0.01, clock)
        write_foreign_lock(manager, "r", 12345, clock())

        handle = await manager.acquire_lock("r")
        assert handle.resource == "r"
        assert list(lock_dir.iterdir()) == [handle.lock_path]

    @pytest.mark.asyncio
    async def test_reclaim_keeps_lock_taken_after_staleness_check(self, lock_dir, clock, monkeypatch):
        policy = StalenessPolicy(timeout=3600, liveness=lambda pid: False)
        first = LockManager(lock_dir, policy, 0.01, clock)
        second = LockManager(lock_dir, policy, 0.01, clock)
        write_foreign_lock(first, "r", 12345, clock())
        path = first.lock_path("r")
        taken = []
        judge = second._is_reclaimable

        def judge_then_lose_race(lock_path, content):
            verdict = judge(lock_path, content)
            if not taken:
                # The other process reclaims and re-acquires in between
                path.unlink()
                taken.append(first._try_create("r", path))
            return verdict

        monkeypatch.setattr(second, "_is_reclaimable", judge_then_lose_race)

        with pytest.raises(LockContentionError) as exc_info:
            await second.acquire_lock("r")

        assert exc_info.value.holder_pid == os.getpid()
        assert json.loads(path.read_text())["id"] == taken[0].id
        assert [p.name for p in lock_dir.iterdir()] == [path.name]
        await first.release_lock(taken[0])
        assert not path.exists()

    @pytest.mark.asyncio
    async def test_live_holder_keeps_lock(self, manager, clock):
        write_foreign_lock(manager, "r", 12345, clock())
        with pytest.raises(LockContentionError) as exc_info:
            await manager.acquire_lock("r")
        assert exc_info.value.holder_pid == 12345

    @pytest.mark.asyncio
    async def test_fresh_unreadable_lock_is_held(self, manager):
        manager.lock_dir.mkdir(parents=True)
        manager.lock_path("r").write_text("{not json")
        with pytest.raises(LockContentionError):
            await manager.acquire_lock("r")

    def test_cleanup_stale_locks(self, manager, clock):
        write_foreign_lock(manager, "old", 1, clock())
        clock.advance(hours=2)
        write_foreign_lock(manager, "new", 2, clock())

        assert manager.cleanup_stale_locks() == 1
        assert [lock.resource for lock in manager.list_locks()] == ["new"]

    def test_release_all_by_scope(self, manager, clock):
        write_foreign_lock(manager, "/ws#cursor", 1, clock())
        write_foreign_lock(manager, "/ws#kiro", 2, clock())
        write_foreign_lock(manager, "/other#cursor", 3, clock())

        assert manager.release_all("/ws#") == 2
        assert [lock.resource for lock in manager.list_locks()] == ["/other#cursor"]

    def test_current_process_is_alive(self):
        assert process_alive(os.getpid())
        assert not process_alive(0)


class TestWaiting:

    @pytest.mark.asyncio
    async def test_wait_times_out(self, manager):
        await manager.acquire_lock("r")
        assert await manager.wait_for_lock("r", timeout=0.05) is None

    @pytest.mark.asyncio
    async def test_wait_succeeds_after_release(self, manager):
        handle = await manager.acquire_lock("r")

        async def release_later():
            await asyncio.sleep(0.03)
            await manager.release_lock(handle)

        releaser = asyncio.create_task(release_later())
        acquired = await manager.wait_for_lock("r", timeout=2)
        await releaser

        assert acquired is not None
        assert acquired.id != handle.id

    @pytest.mark.asyncio
    async def test_context_manager_releases(self, manager):
        async with manager.lock("r") as handle:
            assert manager.is_locked("r")
        assert not handle.lock_path.exists()
