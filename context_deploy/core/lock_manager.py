"""Cross-process mutual exclusion through lock files

A lock is a JSON file created with ``O_CREAT | O_EXCL`` so that exactly one
acquirer can win. Locks are keyed by a resource scope, usually
``<workspace>#<platform>``.
"""

import asyncio
import json
import logging
import os
import sys
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator, Callable, List, Optional

from ..api.exceptions import LockContentionError, LockOwnershipError
from ..constants import LOCK_CHECK_INTERVAL, LOCK_FILE_SUFFIX, LOCK_TIMEOUT
from ..models.lock import LockFileContent, LockHandle
from ..models.result import utcnow
from ..utils.file_utils import safe_filename
from ..utils.hash_utils import hash_string

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

# Unparsable lock files younger than this are treated as held; the creator may
# still be writing the content.
UNREADABLE_LOCK_GRACE = 5.0


def process_alive(pid: int) -> bool:
    """Signal-zero liveness probe

    Returns True when the process exists or cannot be probed.
    """
    if pid <= 0:
        return False
    if sys.platform == "win32":
        # os.kill would terminate the process here
        return True
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists but owned by another user
        return True
    return True


class StalenessPolicy:
    """Decides whether a lock may be reclaimed

    A lock is stale when it is older than ``timeout`` seconds, or when it is
    held by another process that ``liveness`` reports dead.
    """

    def __init__(self,
                 timeout: float = LOCK_TIMEOUT,
                 liveness: Optional[Callable[[int], bool]] = process_alive):
        self.timeout = timeout
        self.liveness = liveness

    def is_stale(self, content: LockFileContent, now: datetime) -> bool:
        timestamp = content.timestamp
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)

        if (now - timestamp).total_seconds() > self.timeout:
            return True

        if self.liveness and content.process_id != os.getpid():
            return not self.liveness(content.process_id)

        return False


class LockManager:
    """File-based lock coordinator"""

    def __init__(self,
                 lock_dir: Path,
                 policy: Optional[StalenessPolicy] = None,
                 poll_interval: float = LOCK_CHECK_INTERVAL,
                 clock: Clock = utcnow):
        """Initialize lock manager

        Args:
            lock_dir: Directory holding lock files
            policy: Staleness policy, defaults to one-hour timeout plus liveness probe
            poll_interval: Default polling interval for wait_for_lock
            clock: Source of the current time
        """
        self.lock_dir = Path(lock_dir)
        self.policy = policy or StalenessPolicy()
        self.poll_interval = poll_interval
        self.clock = clock

    def lock_path(self, resource: str) -> Path:
        """Lock file location for a resource"""
        name = f"{safe_filename(resource, 60)}-{hash_string(resource, 12)}{LOCK_FILE_SUFFIX}"
        return self.lock_dir / name

    async def acquire_lock(self, resource: str) -> LockHandle:
        """Acquire the lock for a resource

        Args:
            resource: Resource scope

        Returns:
            Handle required to release the lock

        Raises:
            LockContentionError: If a live lock is held
        """
        self.lock_dir.mkdir(parents=True, exist_ok=True)
        path = self.lock_path(resource)
        holder_pid = None

        # One retry after reclaiming a stale lock
        for _ in range(2):
            handle = self._try_create(resource, path)
            if handle:
                logger.debug("Acquired lock %s for %s", handle.id, resource)
                return handle

            raw = self._read_raw(path)
            if raw is None:
                # Released between our attempt and the read
                continue

            content = self._parse_lock(path, raw)
            if self._is_reclaimable(path, content):
                if self._reclaim(path, raw):
                    logger.info("Removed stale lock for %s", resource)
                continue

            holder_pid = content.process_id if content else None
            break

        raise LockContentionError(resource, holder_pid)

    def _try_create(self, resource: str, path: Path) -> Optional[LockHandle]:
        now = self.clock()
        content = LockFileContent(
            id=uuid.uuid4().hex,
            process_id=os.getpid(),
            timestamp=now,
            resource=resource,
        )

        try:
            fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return None

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(content.to_dict(), f)
        except BaseException:
            path.unlink(missing_ok=True)
            raise

        return LockHandle(
            id=content.id,
            resource=resource,
            lock_path=path,
            process_id=content.process_id,
            acquired_at=now,
        )

    @staticmethod
    def _read_raw(path: Path) -> Optional[bytes]:
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    @staticmethod
    def _parse_lock(path: Path, raw: bytes) -> Optional[LockFileContent]:
        try:
            return LockFileContent.from_dict(json.loads(raw.decode("utf-8")))
        except (ValueError, KeyError, TypeError) as e:
            logger.debug("Unreadable lock file %s: %s", path, e)
            return None

    def _read_lock(self, path: Path) -> Optional[LockFileContent]:
        try:
            raw = self._read_raw(path)
        except OSError as e:
            logger.debug("Unreadable lock file %s: %s", path, e)
            return None
        return self._parse_lock(path, raw) if raw is not None else None

    def _reclaim(self, path: Path, judged: bytes) -> bool:
        """Remove a lock file judged stale, unless it changed since it was read

        The file is first renamed to a unique tombstone, so of several
        reclaimers only one moves it. If the moved file is not the one that
        was judged, another acquirer already replaced it with a live lock
        and the file is put back.

        Returns:
            True if the stale lock was removed
        """
        tombstone = path.with_name(f"{path.name}.{uuid.uuid4().hex}.stale")
        try:
            os.rename(path, tombstone)
        except FileNotFoundError:
            return False

        try:
            if tombstone.read_bytes() == judged:
                return True
            logger.debug("Lock %s was replaced while reclaiming, restoring it", path.name)
            try:
                os.link(tombstone, path)
            except FileExistsError:
                logger.warning("Lock %s changed hands twice while reclaiming", path.name)
            except OSError:
                # No hard links on this filesystem
                if not path.exists():
                    os.rename(tombstone, path)
            return False
        finally:
            tombstone.unlink(missing_ok=True)

    def _is_reclaimable(self, path: Path, content: Optional[LockFileContent]) -> bool:
        now = self.clock()
        if content is not None:
            return self.policy.is_stale(content, now)

        try:
            modified = datetime.fromtimestamp(path.stat().st_mtime, timezone.utc)
        except FileNotFoundError:
            return True
        return (now - modified).total_seconds() > UNREADABLE_LOCK_GRACE

    async def release_lock(self, handle: LockHandle) -> None:
        """Release a lock previously acquired

        Releasing a lock that no longer exists is a no-op.

        Raises:
            LockOwnershipError: If the lock on disk belongs to another holder
        """
        path = handle.lock_path
        if not path.exists():
            logger.debug("Lock for %s already released", handle.resource)
            return

        content = self._read_lock(path)
        if content is None:
            if not path.exists():
                return
            raise LockOwnershipError(handle.resource)

        if content.id != handle.id:
            raise LockOwnershipError(handle.resource)

        path.unlink(missing_ok=True)
        logger.debug("Released lock %s for %s", handle.id, handle.resource)

    def is_locked(self, resource: str) -> bool:
        """Check whether a live lock is held for a resource"""
        path = self.lock_path(resource)
        if not path.exists():
            return False
        return not self._is_reclaimable(path, self._read_lock(path))

    async def wait_for_lock(self,
                            resource: str,
                            timeout: float,
                            poll_interval: Optional[float] = None) -> Optional[LockHandle]:
        """Poll until the lock is acquired or ``timeout`` seconds elapse

        Returns:
            Lock handle, or None on timeout
        """
        interval = poll_interval or self.poll_interval
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        while True:
            try:
                return await self.acquire_lock(resource)
            except LockContentionError:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    logger.info("Timed out waiting for lock on %s", resource)
                    return None
                await asyncio.sleep(min(interval, remaining))

    @asynccontextmanager
    async def lock(self, resource: str, wait: Optional[float] = None) -> AsyncIterator[LockHandle]:
        """Hold the lock for the duration of a ``async with`` block

        Args:
            resource: Resource scope
            wait: Seconds to wait for a busy lock; fail fast when None

        Raises:
            LockContentionError: If the lock cannot be obtained
        """
        if wait is None:
            handle = await self.acquire_lock(resource)
        else:
            handle = await self.wait_for_lock(resource, wait)
            if handle is None:
                raise LockContentionError(resource)

        try:
            yield handle
        finally:
            await self.release_lock(handle)

    def list_locks(self) -> List[LockFileContent]:
        """Readable lock files currently present"""
        if not self.lock_dir.exists():
            return []
        locks = []
        for path in sorted(self.lock_dir.glob(f"*{LOCK_FILE_SUFFIX}")):
            content = self._read_lock(path)
            if content:
                locks.append(content)
        return locks

    def cleanup_stale_locks(self) -> int:
        """Remove every reclaimable lock

        Returns:
            Number of lock files removed
        """
        if not self.lock_dir.exists():
            return 0

        removed = 0
        for path in self.lock_dir.glob(f"*{LOCK_FILE_SUFFIX}"):
            raw = self._read_raw(path)
            if raw is None:
                continue
            if self._is_reclaimable(path, self._parse_lock(path, raw)) and self._reclaim(path, raw):
                removed += 1

        if removed:
            logger.info("Removed %d stale lock(s)", removed)
        return removed

    def release_all(self, scope: str) -> int:
        """Force-remove locks whose resource contains ``scope``

        Returns:
            Number of lock files removed
        """
        if not self.lock_dir.exists():
            return 0

        removed = 0
        for path in self.lock_dir.glob(f"*{LOCK_FILE_SUFFIX}"):
            content = self._read_lock(path)
            if content and scope in content.resource:
                path.unlink(missing_ok=True)
                removed += 1

        logger.info("Released %d lock(s) matching %s", removed, scope)
        return removed
