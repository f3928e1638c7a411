"""Unit tests for FileCacheStore adapter."""

from __future__ import annotations

import os
import threading
from datetime import timedelta
from pathlib import Path
from typing import TYPE_CHECKING

import pytest


if TYPE_CHECKING:
    from tests.conftest import FakeClock


ID_A = "a" * 32
ID_B = "b" * 32


def _store(tmp_path: Path, clock: FakeClock, ttl: timedelta = timedelta(minutes=5)):
    from clipcache.adapters.cache import FileCacheStore

    return FileCacheStore(cache_dir=tmp_path / "uploads", ttl=ttl, clock=clock)


def _set_mtime(path: Path, when) -> None:
    ts = when.timestamp()
    os.utime(path, (ts, ts))


@pytest.mark.cache
class TestPut:
    """Tests for put() method."""

    def test_put_then_get_returns_asset(self, tmp_path: Path, clock: FakeClock) -> None:
        """put() should store bytes, get() should return the record."""
        store = _store(tmp_path, clock)

        asset = store.put(ID_A, ".mp4", [b"hello ", b"world"])

        assert asset.file_name == f"{ID_A}.mp4"
        assert asset.size == 11
        assert asset.created_at == clock.current
        assert asset.storage_path.read_bytes() == b"hello world"
        assert store.get(ID_A, ".mp4") == asset

    def test_put_accepts_file_object(self, tmp_path: Path, clock: FakeClock) -> None:
        import io

        store = _store(tmp_path, clock)
        asset = store.put(ID_A, ".mp4", io.BytesIO(b"x" * 200_000))

        assert asset.size == 200_000

    def test_put_creates_cache_directory(self, tmp_path: Path, clock: FakeClock) -> None:
        store = _store(tmp_path, clock)
        assert not store.cache_dir.exists()

        store.put(ID_A, ".mp4", [b"data"])

        assert store.cache_dir.is_dir()

    def test_put_leaves_no_partial_files(self, tmp_path: Path, clock: FakeClock) -> None:
        store = _store(tmp_path, clock)
        store.put(ID_A, ".mp4", [b"data"])

        assert [p.name for p in store.cache_dir.iterdir()] == [f"{ID_A}.mp4"]


@pytest.mark.cache
@pytest.mark.tra("Adapter.FileCacheStore.Conflict")
@pytest.mark.tier(1)
class TestConflict:
    """Tests for id collisions."""

    def test_second_put_with_same_id_raises(self, tmp_path: Path, clock: FakeClock) -> None:
        from clipcache.core.exceptions import ConflictError

        store = _store(tmp_path, clock)
        store.put(ID_A, ".mp4", [b"first"])

        with pytest.raises(ConflictError):
            store.put(ID_A, ".mp4", [b"second"])

        assert store.get(ID_A, ".mp4").storage_path.read_bytes() == b"first"

    def test_file_from_earlier_process_conflicts(
        self, tmp_path: Path, clock: FakeClock
    ) -> None:
        from clipcache.core.exceptions import ConflictError

        store = _store(tmp_path, clock)
        store.ensure_directory()
        (store.cache_dir / f"{ID_A}.mp4").write_bytes(b"old")

        with pytest.raises(ConflictError):
            store.put(ID_A, ".mp4", [b"new"])

        assert (store.cache_dir / f"{ID_A}.mp4").read_bytes() == b"old"

    def test_concurrent_writer_with_same_id_conflicts(
        self, tmp_path: Path, clock: FakeClock
    ) -> None:
        """A second writer is rejected while the first is still running."""
        from clipcache.core.exceptions import ConflictError

        store = _store(tmp_path, clock)
        entered = threading.Event()
        release = threading.Event()
        errors: list[BaseException] = []

        def slow_writer(path: Path) -> None:
            entered.set()
            release.wait(5)
            path.write_bytes(b"slow")

        def run() -> None:
            try:
                store.ingest(ID_A, ".mp4", slow_writer)
            except BaseException as e:  # pragma: no cover - surfaced below
                errors.append(e)

        thread = threading.Thread(target=run)
        thread.start()
        assert entered.wait(5)

        with pytest.raises(ConflictError):
            store.put(ID_A, ".mp4", [b"fast"])

        release.set()
        thread.join(5)
        assert errors == []
        assert store.get(ID_A, ".mp4").storage_path.read_bytes() == b"slow"


@pytest.mark.cache
@pytest.mark.tra("Adapter.FileCacheStore.AtomicWrite")
@pytest.mark.tier(1)
class TestIngest:
    """Tests for ingest() and write visibility."""

    def test_asset_is_invisible_while_writing(
        self, tmp_path: Path, clock: FakeClock
    ) -> None:
        store = _store(tmp_path, clock)
        seen: list[object] = []

        def writer(path: Path) -> None:
            path.write_bytes(b"partial")
            seen.append(store.get(ID_A, ".mp4"))
            seen.append((store.cache_dir / f"{ID_A}.mp4").exists())
            seen.append(store.list_assets())

        store.ingest(ID_A, ".mp4", writer)

        assert seen == [None, False, []]
        assert store.get(ID_A, ".mp4") is not None

    def test_failed_writer_leaves_nothing_behind(
        self, tmp_path: Path, clock: FakeClock
    ) -> None:
        store = _store(tmp_path, clock)

        def writer(path: Path) -> None:
            path.write_bytes(b"half")
            raise RuntimeError("origin went away")

        with pytest.raises(RuntimeError, match="origin went away"):
            store.ingest(ID_A, ".mp4", writer)

        assert list(store.cache_dir.iterdir()) == []
        assert store.get(ID_A, ".mp4") is None

    def test_id_is_reusable_after_failed_write(
        self, tmp_path: Path, clock: FakeClock
    ) -> None:
        store = _store(tmp_path, clock)

        def failing(path: Path) -> None:
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            store.ingest(ID_A, ".mp4", failing)

        asset = store.put(ID_A, ".mp4", [b"ok"])
        assert asset.size == 2

    def test_os_error_becomes_storage_error(
        self, tmp_path: Path, clock: FakeClock
    ) -> None:
        from clipcache.core.exceptions import StorageIOError

        store = _store(tmp_path, clock)

        def writer(path: Path) -> None:
            raise OSError(28, "No space left on device")

        with pytest.raises(StorageIOError) as exc_info:
            store.ingest(ID_A, ".mp4", writer)

        assert exc_info.value.asset_id == ID_A
        assert isinstance(exc_info.value.cause, OSError)
        assert list(store.cache_dir.iterdir()) == []

    def test_concurrent_puts_with_distinct_ids(
        self, tmp_path: Path, clock: FakeClock
    ) -> None:
        from concurrent.futures import ThreadPoolExecutor

        store = _store(tmp_path, clock)
        ids = [f"{i:032x}" for i in range(20)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda i: store.put(i, ".mp4", [i.encode()]), ids))

        for asset_id in ids:
            asset = store.get(asset_id, ".mp4")
            assert asset is not None
            assert asset.storage_path.read_bytes() == asset_id.encode()


@pytest.mark.cache
class TestGet:
    """Tests for get() method."""

    def test_unknown_id_returns_none(self, tmp_path: Path, clock: FakeClock) -> None:
        store = _store(tmp_path, clock)
        assert store.get(ID_A, ".mp4") is None

    def test_wrong_extension_returns_none(self, tmp_path: Path, clock: FakeClock) -> None:
        store = _store(tmp_path, clock)
        store.put(ID_A, ".mp4", [b"data"])

        assert store.get(ID_A, ".webm") is None

    def test_expired_asset_returns_none(self, tmp_path: Path, clock: FakeClock) -> None:
        store = _store(tmp_path, clock)
        store.put(ID_A, ".mp4", [b"data"])

        clock.advance(minutes=5, seconds=1)

        assert store.get(ID_A, ".mp4") is None

    def test_externally_deleted_file_returns_none(
        self, tmp_path: Path, clock: FakeClock
    ) -> None:
        store = _store(tmp_path, clock)
        asset = store.put(ID_A, ".mp4", [b"data"])
        asset.storage_path.unlink()

        assert store.get(ID_A, ".mp4") is None

    def test_file_from_earlier_process_uses_mtime(
        self, tmp_path: Path, clock: FakeClock
    ) -> None:
        store = _store(tmp_path, clock)
        store.ensure_directory()
        path = store.cache_dir / f"{ID_A}.mp4"
        path.write_bytes(b"leftover")
        _set_mtime(path, clock.current - timedelta(minutes=1))

        asset = store.get(ID_A, ".mp4")

        assert asset is not None
        assert asset.size == 8
        assert asset.created_at == clock.current - timedelta(minutes=1)


@pytest.mark.cache
class TestOpenAsset:
    """Tests for open_asset() method."""

    def test_returns_readable_handle(self, tmp_path: Path, clock: FakeClock) -> None:
        store = _store(tmp_path, clock)
        store.put(ID_A, ".mp4", [b"payload"])

        opened = store.open_asset(ID_A, ".mp4")

        assert opened is not None
        asset, handle = opened
        with handle:
            assert handle.read() == b"payload"
        assert asset.id == ID_A

    def test_open_handle_survives_reclamation(
        self, tmp_path: Path, clock: FakeClock
    ) -> None:
        """A reader that already opened the file keeps reading after a sweep."""
        store = _store(tmp_path, clock)
        store.put(ID_A, ".mp4", [b"payload"])
        opened = store.open_asset(ID_A, ".mp4")
        assert opened is not None
        _, handle = opened

        clock.advance(minutes=6)
        assert store.sweep() == 1

        with handle:
            assert handle.read() == b"payload"
        assert store.open_asset(ID_A, ".mp4") is None


@pytest.mark.cache
@pytest.mark.tra("Adapter.FileCacheStore.Sweep")
@pytest.mark.tier(1)
class TestSweep:
    """Tests for sweep() method."""

    def test_reclaims_asset_past_ttl(self, tmp_path: Path, clock: FakeClock) -> None:
        store = _store(tmp_path, clock)
        asset = store.put(ID_A, ".mp4", [b"data"])

        clock.advance(minutes=5, milliseconds=1)
        reclaimed = store.sweep()

        assert reclaimed == 1
        assert not asset.storage_path.exists()
        assert store.get(ID_A, ".mp4") is None

    def test_keeps_asset_exactly_ttl_old(self, tmp_path: Path, clock: FakeClock) -> None:
        store = _store(tmp_path, clock)
        asset = store.put(ID_A, ".mp4", [b"data"])

        clock.advance(minutes=5)

        assert store.sweep() == 0
        assert asset.storage_path.exists()

    def test_keeps_young_assets(self, tmp_path: Path, clock: FakeClock) -> None:
        store = _store(tmp_path, clock)
        store.put(ID_A, ".mp4", [b"old"])
        clock.advance(minutes=4)
        store.put(ID_B, ".mp4", [b"new"])
        clock.advance(minutes=2)

        assert store.sweep() == 1
        assert store.get(ID_A, ".mp4") is None
        assert store.get(ID_B, ".mp4") is not None

    def test_explicit_now_and_ttl(self, tmp_path: Path, clock: FakeClock) -> None:
        store = _store(tmp_path, clock)
        store.put(ID_A, ".mp4", [b"data"])

        later = clock.current + timedelta(seconds=30)
        assert store.sweep(now=later, ttl=timedelta(seconds=10)) == 1

    def test_reclaims_leftovers_from_earlier_process(
        self, tmp_path: Path, clock: FakeClock
    ) -> None:
        store = _store(tmp_path, clock)
        store.ensure_directory()
        old = store.cache_dir / f"{ID_A}.mp4"
        old.write_bytes(b"old")
        _set_mtime(old, clock.current - timedelta(minutes=10))
        fresh = store.cache_dir / f"{ID_B}.mp4"
        fresh.write_bytes(b"fresh")
        _set_mtime(fresh, clock.current - timedelta(minutes=1))

        assert store.sweep() == 1
        assert not old.exists()
        assert fresh.exists()

    def test_ignores_foreign_files(self, tmp_path: Path, clock: FakeClock) -> None:
        store = _store(tmp_path, clock)
        store.ensure_directory()
        foreign = store.cache_dir / "notes.txt"
        foreign.write_text("keep me")
        _set_mtime(foreign, clock.current - timedelta(hours=1))

        assert store.sweep() == 0
        assert foreign.exists()

    def test_reclaims_stale_partial_files(
        self, tmp_path: Path, clock: FakeClock
    ) -> None:
        store = _store(tmp_path, clock)
        store.ensure_directory()
        partial = store.cache_dir / f"{ID_A}.mp4.part"
        partial.write_bytes(b"abandoned")
        _set_mtime(partial, clock.current - timedelta(minutes=10))

        assert store.sweep() == 1
        assert not partial.exists()

    def test_never_touches_write_in_progress(
        self, tmp_path: Path, clock: FakeClock
    ) -> None:
        store = _store(tmp_path, clock)
        counts: list[int] = []

        def writer(path: Path) -> None:
            path.write_bytes(b"data")
            _set_mtime(path, clock.current - timedelta(minutes=10))
            clock.advance(minutes=10)
            counts.append(store.sweep())
            counts.append(int(path.exists()))

        store.ingest(ID_A, ".mp4", writer)

        assert counts == [0, 1]
        assert store.get(ID_A, ".mp4") is not None

    def test_missing_directory_returns_zero(
        self, tmp_path: Path, clock: FakeClock
    ) -> None:
        store = _store(tmp_path, clock)
        assert store.sweep() == 0

    def test_failed_deletion_is_skipped(
        self, tmp_path: Path, clock: FakeClock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """One undeletable file does not stop the rest of the sweep."""
        store = _store(tmp_path, clock)
        stuck = store.put(ID_A, ".mp4", [b"stuck"])
        store.put(ID_B, ".mp4", [b"gone"])
        clock.advance(minutes=6)

        real_unlink = os.unlink

        def flaky_unlink(path, *args, **kwargs):
            if os.fspath(path) == str(stuck.storage_path):
                raise PermissionError("denied")
            return real_unlink(path, *args, **kwargs)

        monkeypatch.setattr(os, "unlink", flaky_unlink)

        assert store.sweep() == 1
        assert stuck.storage_path.exists()

    def test_already_removed_file_is_tolerated(
        self, tmp_path: Path, clock: FakeClock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        store = _store(tmp_path, clock)
        store.put(ID_A, ".mp4", [b"data"])
        clock.advance(minutes=6)

        real_unlink = os.unlink

        def racing_unlink(path, *args, **kwargs):
            # Another sweeper got there first
            real_unlink(path, *args, **kwargs)
            raise FileNotFoundError(path)

        monkeypatch.setattr(os, "unlink", racing_unlink)

        assert store.sweep() == 0
        assert store.get(ID_A, ".mp4") is None


@pytest.mark.cache
class TestListAssets:
    """Tests for list_assets() and statistics()."""

    def test_lists_oldest_first(self, tmp_path: Path, clock: FakeClock) -> None:
        store = _store(tmp_path, clock)
        store.put(ID_B, ".mp4", [b"first"])
        clock.advance(seconds=10)
        store.put(ID_A, ".webm", [b"second"])

        assert [a.file_name for a in store.list_assets()] == [
            f"{ID_B}.mp4",
            f"{ID_A}.webm",
        ]

    def test_excludes_partials_and_foreign_files(
        self, tmp_path: Path, clock: FakeClock
    ) -> None:
        store = _store(tmp_path, clock)
        store.put(ID_A, ".mp4", [b"data"])
        (store.cache_dir / f"{ID_B}.mp4.part").write_bytes(b"half")
        (store.cache_dir / "README").write_text("x")

        assert [a.id for a in store.list_assets()] == [ID_A]

    def test_statistics(self, tmp_path: Path, clock: FakeClock) -> None:
        store = _store(tmp_path, clock)
        store.put(ID_A, ".mp4", [b"12345"])
        store.put(ID_B, ".mp4", [b"123"])

        assert store.statistics() == {"total_size": 8, "file_count": 2}

    def test_empty_when_directory_missing(self, tmp_path: Path, clock: FakeClock) -> None:
        store = _store(tmp_path, clock)
        assert store.list_assets() == []
