"""Tests for the session store backends and facade."""

import asyncio

import pytest

from interview_engine.models.enums import DifficultyLevel, InterviewType
from interview_engine.models.interview import InterviewSession, Question
from interview_engine.services.storage_manager import FileStorageManager, StorageManager
from interview_engine.utils.exceptions import ConcurrentModificationError, StorageError


def make_session(user_id="alice") -> InterviewSession:
    return InterviewSession(
        user_id=user_id,
        type=InterviewType.TECHNICAL,
        difficulty=DifficultyLevel.MEDIUM,
        total_questions=5,
        questions=[Question(text="What is a heap?")],
    )


@pytest.fixture(params=["memory", "file"])
async def store(request, tmp_path) -> StorageManager:
    if request.param == "file":
        manager = StorageManager("file", base_path=str(tmp_path / "data"))
    else:
        manager = StorageManager("memory")
    await manager.initialize()
    return manager


async def test_load_is_scoped_to_owner(store):
    session = await store.create_session(make_session("alice"))

    assert (await store.load_session(session.session_id, "alice")).session_id == session.session_id
    assert await store.load_session(session.session_id, "mallory") is None
    assert await store.load_session("does-not-exist", "alice") is None


async def test_save_bumps_version_and_timestamp(store):
    session = await store.create_session(make_session())
    loaded = await store.load_session(session.session_id, "alice")
    loaded.questions[0].answer = "A complete answer"

    saved = await store.save_session(loaded)

    assert saved.version == 1
    assert saved.updated_at is not None
    reloaded = await store.load_session(session.session_id, "alice")
    assert reloaded.version == 1
    assert reloaded.questions[0].answer == "A complete answer"


async def test_stale_save_raises_conflict(store):
    session = await store.create_session(make_session())
    first = await store.load_session(session.session_id, "alice")
    second = await store.load_session(session.session_id, "alice")

    await store.save_session(first)

    with pytest.raises(ConcurrentModificationError):
        await store.save_session(second)


async def test_explicit_expected_version_is_checked(store):
    session = await store.create_session(make_session())

    with pytest.raises(ConcurrentModificationError):
        await store.save_session(session, expected_version=3)


async def test_duplicate_create_is_rejected(store):
    session = await store.create_session(make_session())

    with pytest.raises(StorageError):
        await store.create_session(session)


async def test_returned_sessions_are_independent_copies(store):
    session = await store.create_session(make_session())
    loaded = await store.load_session(session.session_id, "alice")
    loaded.questions.append(Question(text="Unsaved question"))

    reloaded = await store.load_session(session.session_id, "alice")

    assert len(reloaded.questions) == 1


async def test_list_sessions_by_owner(store):
    mine = await store.create_session(make_session("alice"))
    await store.create_session(make_session("bob"))

    assert await store.list_sessions("alice") == [mine.session_id]


async def test_initialize_is_idempotent(tmp_path, monkeypatch):
    manager = StorageManager("file", base_path=str(tmp_path / "data"))
    calls = []
    original = manager.storage_interface.initialize

    async def counting_initialize():
        calls.append(1)
        await original()

    monkeypatch.setattr(manager.storage_interface, "initialize", counting_initialize)

    await asyncio.gather(manager.initialize(), manager.initialize())
    await manager.initialize()

    assert calls == [1]
    assert manager.is_initialized
    assert (tmp_path / "data" / "sessions").is_dir()


async def test_operations_require_initialization():
    manager = StorageManager("memory")

    with pytest.raises(StorageError):
        await manager.load_session("abc", "alice")


def test_unsupported_storage_type():
    with pytest.raises(StorageError):
        StorageManager("mongodb")


async def test_session_lock_serializes_same_id():
    manager = StorageManager("memory")
    events = []

    async def worker(name):
        async with manager.session_lock("s1"):
            events.append(f"{name}-in")
            await asyncio.sleep(0.01)
            events.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))

    assert events in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])


async def test_session_lock_does_not_block_other_ids():
    manager = StorageManager("memory")
    events = []

    async def worker(session_id):
        async with manager.session_lock(session_id):
            events.append(f"{session_id}-in")
            await asyncio.sleep(0.01)
            events.append(f"{session_id}-out")

    await asyncio.gather(worker("s1"), worker("s2"))

    assert events[:2] == ["s1-in", "s2-in"]


class TestFileBackend:
    async def test_writes_one_document_per_session(self, tmp_path):
        backend = FileStorageManager(base_path=str(tmp_path))
        await backend.initialize()

        session = await backend.create_session(make_session())

        files = sorted(p.name for p in (tmp_path / "sessions").iterdir())
        assert files == [f"{session.session_id}.json"]

    async def test_rejects_path_like_ids(self, tmp_path):
        backend = FileStorageManager(base_path=str(tmp_path))
        await backend.initialize()

        assert await backend.load_session("../secrets", "alice") is None
        assert await backend.load_session(".hidden", "alice") is None

    async def test_corrupt_document_raises_storage_error(self, tmp_path):
        backend = FileStorageManager(base_path=str(tmp_path))
        await backend.initialize()
        (tmp_path / "sessions" / "broken.json").write_text("{not json", encoding="utf-8")

        with pytest.raises(StorageError):
            await backend.load_session("broken", "alice")


async def test_writers_in_separate_managers_do_not_lose_updates(tmp_path):
    base_path = str(tmp_path / "data")
    first_manager = StorageManager("file", base_path=base_path)
    second_manager = StorageManager("file", base_path=base_path)
    await first_manager.initialize()
    await second_manager.initialize()
    session = await first_manager.create_session(make_session())

    answering = await first_manager.load_session(session.session_id, "alice")
    appending = await second_manager.load_session(session.session_id, "alice")
    answering.questions[0].answer = "A heap is a tree-shaped priority queue"
    appending.questions.append(Question(text="What is a trie?"))

    results = await asyncio.gather(
        first_manager.save_session(answering),
        second_manager.save_session(appending),
        return_exceptions=True,
    )

    conflicts = [r for r in results if isinstance(r, ConcurrentModificationError)]
    saved = [r for r in results if isinstance(r, InterviewSession)]
    assert len(conflicts) == 1
    assert len(saved) == 1

    stored = await first_manager.load_session(session.session_id, "alice")
    assert stored.version == 1
    assert stored.model_dump() == saved[0].model_dump()

    leftovers = [p.name for p in (tmp_path / "data" / "sessions").iterdir() if not p.name.endswith(".json")]
    assert leftovers == []


async def test_held_lock_times_out(tmp_path):
    manager = FileStorageManager(str(tmp_path / "data"), lock_timeout=0.05, lock_poll_interval=0.01)
    await manager.initialize()
    session = await manager.create_session(make_session())
    (manager.sessions_path / f"{session.session_id}.lock").write_text("4242", encoding="utf-8")

    with pytest.raises(StorageError):
        await manager.save_session(session, expected_version=0)


async def test_stale_lock_is_broken(tmp_path):
    manager = FileStorageManager(str(tmp_path / "data"), stale_lock_after=0.0, lock_timeout=1.0)
    await manager.initialize()
    session = await manager.create_session(make_session())
    lock_file = manager.sessions_path / f"{session.session_id}.lock"
    lock_file.write_text("4242", encoding="utf-8")
    await asyncio.sleep(0.01)

    saved = await manager.save_session(session, expected_version=0)

    assert saved.version == 1
    assert not lock_file.exists()


async def test_list_sessions_skips_unreadable_documents(tmp_path):
    manager = StorageManager("file", base_path=str(tmp_path / "data"))
    await manager.initialize()
    mine = await manager.create_session(make_session("alice"))
    (tmp_path / "data" / "sessions" / "broken.json").write_text("{not json", encoding="utf-8")

    assert await manager.list_sessions("alice") == [mine.session_id]
