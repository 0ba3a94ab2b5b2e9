import asyncio
import os

import pytest


@pytest.mark.unit
class TestFileManagerService:
    """Test File Manager Service operations."""

    async def test_write_read_relative_path(self, services_manager):
        files = services_manager.file_service_manager

        await files.write_file("nested/example.bin", b"\x00\x01payload")

        assert await files.file_exists("nested/example.bin")
        assert await files.read_file("nested/example.bin") == b"\x00\x01payload"
        assert os.path.exists(os.path.join(files.get_storage_path(), "nested", "example.bin"))

    async def test_read_missing_file_raises(self, services_manager):
        with pytest.raises(FileNotFoundError):
            await services_manager.file_service_manager.read_file("missing.json")

    async def test_write_replaces_whole_file(self, services_manager, tmp_path):
        files = services_manager.file_service_manager
        target_dir = tmp_path / "elsewhere"
        path = str(target_dir / "replace.txt")

        await files.write_file(path, b"a much longer first version")
        await files.write_file(path, b"short")

        assert await files.read_file(path) == b"short"
        # no temp files left behind by the atomic replace
        assert os.listdir(target_dir) == ["replace.txt"]

    async def test_update_file_sees_none_for_missing(self, services_manager):
        files = services_manager.file_service_manager
        seen = []

        def transform(current):
            seen.append(current)
            return (current or b"") + b"x"

        assert await files.update_file("counter.txt", transform) == b"x"
        assert await files.update_file("counter.txt", transform) == b"xx"
        assert seen == [None, b"x"]

    async def test_concurrent_updates_do_not_lose_writes(self, services_manager):
        files = services_manager.file_service_manager

        def append_one(current):
            return (current or b"") + b"1"

        await asyncio.gather(*(files.update_file("race.txt", append_one) for _ in range(10)))

        assert await files.read_file("race.txt") == b"1" * 10
        # locks are dropped once nobody waits on them
        assert files._locks == {}

    async def test_cancelled_waiter_releases_lock_entry(self, services_manager):
        files = services_manager.file_service_manager

        async with files.file_lock("busy.txt"):
            waiter = asyncio.create_task(files.update_file("busy.txt", lambda _: b"x"))
            await asyncio.sleep(0)  # blocked on the held lock
            waiter.cancel()
            with pytest.raises(asyncio.CancelledError):
                await waiter

        assert files._locks == {}
        assert files._waiters == {}
        assert not await files.file_exists("busy.txt")

    async def test_delete_file(self, services_manager):
        files = services_manager.file_service_manager
        await files.write_file("gone.txt", b"bye")

        await files.delete_file("gone.txt")

        assert not await files.file_exists("gone.txt")
        with pytest.raises(FileNotFoundError):
            await files.delete_file("gone.txt")


@pytest.mark.unit
class TestRecordingFileManagerService:
    async def test_build_capture_path(self, services_manager):
        recordings = services_manager.recording_file_service_manager

        path = recordings.build_capture_path(1234, timestamp_ms=1700000000000)

        assert path == os.path.join(
            recordings.get_recording_storage_path(), "1700000000000-1234.wav"
        )
        assert os.path.isabs(path)

    async def test_storage_directory_created_on_start(self, services_manager):
        recordings = services_manager.recording_file_service_manager
        assert os.path.isdir(recordings.get_recording_storage_path())

    async def test_delete_recording(self, services_manager):
        recordings = services_manager.recording_file_service_manager
        path = recordings.build_capture_path(1, timestamp_ms=1)
        with open(path, "wb") as f:
            f.write(b"RIFF")

        assert await recordings.delete_recording(path) is True
        assert not os.path.exists(path)
        assert await recordings.delete_recording(path) is False
