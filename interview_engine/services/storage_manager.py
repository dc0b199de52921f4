"""Session store: owner-scoped, version-checked persistence of interview sessions."""

import asyncio
import contextlib
import json
import os
import time
import weakref
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Dict, List, Optional
from uuid import uuid4

import aiofiles
import aiofiles.os

from ..models.interview import InterviewSession
from ..utils.exceptions import ConcurrentModificationError, StorageError
from ..utils.logging import get_logger


class StorageInterface:
    """Abstract interface for session persistence."""

    async def initialize(self) -> None:
        """Prepare the persistence schema. Must be safe to call once at process start."""
        raise NotImplementedError

    async def create_session(self, session: InterviewSession) -> InterviewSession:
        """Persist a new session."""
        raise NotImplementedError

    async def load_session(self, session_id: str, user_id: str) -> Optional[InterviewSession]:
        """Load a session owned by user_id; None when unknown or owned by someone else."""
        raise NotImplementedError

    async def save_session(self, session: InterviewSession, expected_version: int) -> InterviewSession:
        """Conditionally replace a session read at expected_version."""
        raise NotImplementedError

    async def list_sessions(self, user_id: str) -> List[str]:
        """List session IDs owned by a user."""
        raise NotImplementedError

    async def cleanup(self) -> None:
        """Release backend resources."""


def _check_version(session_id: str, expected_version: int, actual_version: int) -> None:
    if expected_version != actual_version:
        raise ConcurrentModificationError(
            f"Session {session_id} was modified concurrently "
            f"(expected version {expected_version}, found {actual_version})",
            session_id=session_id,
            expected_version=expected_version,
            actual_version=actual_version,
        )


def _next_revision(session: InterviewSession, stored_version: int) -> InterviewSession:
    stored = session.model_copy(deep=True)
    stored.version = stored_version + 1
    stored.update_timestamp()
    return stored


class MemoryStorageManager(StorageInterface):
    """In-process storage. Sessions are deep-copied in and out."""

    def __init__(self):
        self._sessions: Dict[str, InterviewSession] = {}
        self.logger = get_logger("storage_manager")

    async def initialize(self) -> None:
        self.logger.info("MemoryStorageManager initialized successfully")

    async def create_session(self, session: InterviewSession) -> InterviewSession:
        if session.session_id in self._sessions:
            raise StorageError(f"Session {session.session_id} already exists")
        self._sessions[session.session_id] = session.model_copy(deep=True)
        return session.model_copy(deep=True)

    async def load_session(self, session_id: str, user_id: str) -> Optional[InterviewSession]:
        stored = self._sessions.get(session_id)
        if stored is None or stored.user_id != user_id:
            return None
        return stored.model_copy(deep=True)

    async def save_session(self, session: InterviewSession, expected_version: int) -> InterviewSession:
        stored = self._sessions.get(session.session_id)
        if stored is None:
            raise StorageError(f"Session {session.session_id} does not exist")
        _check_version(session.session_id, expected_version, stored.version)

        updated = _next_revision(session, stored.version)
        self._sessions[session.session_id] = updated
        return updated.model_copy(deep=True)

    async def list_sessions(self, user_id: str) -> List[str]:
        return [sid for sid, s in self._sessions.items() if s.user_id == user_id]


class FileStorageManager(StorageInterface):
    """File-based storage: one JSON document per session."""

    def __init__(
        self,
        base_path: str = "data",
        lock_timeout: float = 10.0,
        lock_poll_interval: float = 0.02,
        stale_lock_after: float = 60.0,
    ):
        """Initialize the file storage manager.

        Args:
            base_path: Base directory for storing data files.
            lock_timeout: Seconds to wait for a session lock before failing.
            lock_poll_interval: Seconds between attempts to take a held lock.
            stale_lock_after: Age in seconds after which a lock file is broken.
        """
        self.base_path = Path(base_path)
        self.sessions_path = self.base_path / "sessions"
        self.lock_timeout = lock_timeout
        self.lock_poll_interval = lock_poll_interval
        self.stale_lock_after = stale_lock_after
        self.logger = get_logger("storage_manager")

    async def initialize(self) -> None:
        """Create the sessions directory and verify it is writable."""
        try:
            self.sessions_path.mkdir(parents=True, exist_ok=True)
            probe = self.sessions_path / ".write_test"
            async with aiofiles.open(probe, "w", encoding="utf-8") as f:
                await f.write("ok")
            await aiofiles.os.remove(probe)
        except OSError as e:
            self.logger.error(f"Failed to initialize FileStorageManager: {e}")
            raise StorageError(f"Storage initialization failed: {e}", file_path=str(self.sessions_path)) from e

        self.logger.info(f"FileStorageManager initialized at {self.sessions_path}")

    @staticmethod
    def _is_safe_id(session_id: str) -> bool:
        # Session ids become file names and must stay inside the sessions directory.
        return bool(session_id) and os.sep not in session_id and "/" not in session_id and not session_id.startswith(".")

    def _session_file(self, session_id: str) -> Path:
        if not self._is_safe_id(session_id):
            raise StorageError(f"Invalid session id: {session_id!r}")
        return self.sessions_path / f"{session_id}.json"

    async def _read(self, session_file: Path) -> Optional[InterviewSession]:
        if not session_file.exists():
            return None
        try:
            async with aiofiles.open(session_file, "r", encoding="utf-8") as f:
                content = await f.read()
            return InterviewSession.model_validate(json.loads(content))
        except Exception as e:
            self.logger.error(f"Failed to load session file {session_file.name}: {e}")
            raise StorageError(f"Session load failed: {e}", file_path=str(session_file)) from e

    @asynccontextmanager
    async def _file_lock(self, session_id: str) -> AsyncIterator[None]:
        """Exclusive access to one session file across processes.

        The lock is a ``<id>.lock`` file created with ``O_EXCL``. A lock older than
        ``stale_lock_after`` seconds belongs to a writer that died and is broken.
        """
        self._session_file(session_id)
        lock_file = self.sessions_path / f"{session_id}.lock"
        deadline = time.monotonic() + self.lock_timeout
        while True:
            try:
                async with aiofiles.open(lock_file, "x", encoding="utf-8") as f:
                    await f.write(str(os.getpid()))
                break
            except FileExistsError:
                if self._is_stale(lock_file):
                    self.logger.warning(f"Breaking stale lock for session {session_id}")
                    with contextlib.suppress(FileNotFoundError):
                        await aiofiles.os.remove(lock_file)
                    continue
                if time.monotonic() >= deadline:
                    raise StorageError(f"Timed out waiting for lock on session {session_id}", file_path=str(lock_file))
                await asyncio.sleep(self.lock_poll_interval)
            except OSError as e:
                raise StorageError(f"Failed to lock session {session_id}: {e}", file_path=str(lock_file)) from e
        try:
            yield
        finally:
            with contextlib.suppress(FileNotFoundError):
                await aiofiles.os.remove(lock_file)

    def _is_stale(self, lock_file: Path) -> bool:
        try:
            return time.time() - lock_file.stat().st_mtime > self.stale_lock_after
        except FileNotFoundError:
            return False

    async def _write(self, session: InterviewSession) -> None:
        session_file = self._session_file(session.session_id)
        temp_file = self.sessions_path / f".{session.session_id}.{uuid4().hex}.tmp"
        try:
            async with aiofiles.open(temp_file, "w", encoding="utf-8") as f:
                await f.write(session.model_dump_json(indent=2))
            await aiofiles.os.replace(temp_file, session_file)
        except OSError as e:
            self.logger.error(f"Failed to save session {session.session_id}: {e}")
            with contextlib.suppress(OSError):
                await aiofiles.os.remove(temp_file)
            raise StorageError(f"Session save failed: {e}", file_path=str(session_file)) from e

    async def create_session(self, session: InterviewSession) -> InterviewSession:
        async with self._file_lock(session.session_id):
            if self._session_file(session.session_id).exists():
                raise StorageError(f"Session {session.session_id} already exists")
            await self._write(session)
        self.logger.info(f"Session {session.session_id} created")
        return session.model_copy(deep=True)

    async def load_session(self, session_id: str, user_id: str) -> Optional[InterviewSession]:
        if not self._is_safe_id(session_id):
            return None
        session = await self._read(self._session_file(session_id))
        if session is None or session.user_id != user_id:
            self.logger.debug(f"Session {session_id} not found for user {user_id}")
            return None
        return session

    async def save_session(self, session: InterviewSession, expected_version: int) -> InterviewSession:
        # Read, version check and replace run under one cross-process lock.
        async with self._file_lock(session.session_id):
            stored = await self._read(self._session_file(session.session_id))
            if stored is None:
                raise StorageError(f"Session {session.session_id} does not exist")
            _check_version(session.session_id, expected_version, stored.version)

            updated = _next_revision(session, stored.version)
            await self._write(updated)
        self.logger.info(f"Session {session.session_id} saved at version {updated.version}")
        return updated

    async def list_sessions(self, user_id: str) -> List[str]:
        session_ids = []
        for session_file in sorted(self.sessions_path.glob("*.json")):
            try:
                session = await self._read(session_file)
            except StorageError:
                self.logger.warning(f"Skipping unreadable session file {session_file.name}")
                continue
            if session is not None and session.user_id == user_id:
                session_ids.append(session.session_id)
        return session_ids


class StorageManager:
    """Main storage manager that provides a unified interface."""

    def __init__(self, storage_type: str = "file", **kwargs):
        """Initialize the storage manager.

        Args:
            storage_type: "file" or "memory".
            **kwargs: Backend configuration parameters.
        """
        self.storage_type = storage_type
        self.logger = get_logger("storage_manager")
        self._initialized = False
        self._init_lock = asyncio.Lock()
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

        if storage_type == "file":
            self.storage_interface: StorageInterface = FileStorageManager(**kwargs)
        elif storage_type == "memory":
            self.storage_interface = MemoryStorageManager()
        else:
            raise StorageError(f"Unsupported storage type: {storage_type}")

    async def initialize(self) -> None:
        """Prepare the backend once; later calls are no-ops."""
        async with self._init_lock:
            if self._initialized:
                self.logger.debug("StorageManager already initialized")
                return
            await self.storage_interface.initialize()
            self._initialized = True

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise StorageError("Storage manager not initialized")

    @asynccontextmanager
    async def session_lock(self, session_id: str) -> AsyncIterator[None]:
        """Hold exclusive access to one session id for the duration of the block."""
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        async with lock:
            yield

    async def create_session(self, session: InterviewSession) -> InterviewSession:
        self._require_initialized()
        return await self.storage_interface.create_session(session)

    async def load_session(self, session_id: str, user_id: str) -> Optional[InterviewSession]:
        self._require_initialized()
        return await self.storage_interface.load_session(session_id, user_id)

    async def save_session(self, session: InterviewSession, expected_version: Optional[int] = None) -> InterviewSession:
        """Save a session read at expected_version (defaults to session.version)."""
        self._require_initialized()
        if expected_version is None:
            expected_version = session.version
        return await self.storage_interface.save_session(session, expected_version)

    async def list_sessions(self, user_id: str) -> List[str]:
        self._require_initialized()
        return await self.storage_interface.list_sessions(user_id)

    async def cleanup(self) -> None:
        """Clean up storage manager resources."""
        await self.storage_interface.cleanup()
        self._initialized = False
