"""Tests for segmentation artifact cleanup timing."""

import signal

import pytest

from stream_relay.application.stream.artifacts import SegmentArtifactStore
from stream_relay.common.errors import UnresolvedStreamIdentity
from tests.doubles import ManualScheduler, drain
from tests.factories import make_destinations, make_settings


class TestSegmentArtifactStore:
    def test_removal_waits_for_delay(self, tmp_path):
        scheduler = ManualScheduler()
        store = SegmentArtifactStore(scheduler)
        directory = store.prepare("live__abc123", tmp_path / "live__abc123")
        (directory / "index.m3u8").write_text("#EXTM3U\n")

        assert store.schedule_removal("live__abc123", 30.0) is True
        scheduler.advance(29.9)
        assert directory.exists()
        assert store.is_pending("live__abc123")

        scheduler.advance(0.1)
        assert not directory.exists()
        assert not store.is_pending("live__abc123")
        assert store.directory_for("live__abc123") is None

    def test_schedule_unknown_key_is_noop(self, tmp_path):
        store = SegmentArtifactStore(ManualScheduler())
        assert store.schedule_removal("missing", 30.0) is False

    def test_prepare_cancels_pending_removal(self, tmp_path):
        scheduler = ManualScheduler()
        store = SegmentArtifactStore(scheduler)
        directory = store.prepare("live__abc123", tmp_path / "live__abc123")
        store.schedule_removal("live__abc123", 30.0)

        scheduler.advance(10)
        store.prepare("live__abc123", directory)
        scheduler.advance(60)

        assert directory.exists()
        assert not store.is_pending("live__abc123")

    def test_purge_all_removes_immediately(self, tmp_path):
        scheduler = ManualScheduler()
        store = SegmentArtifactStore(scheduler)
        first = store.prepare("live__a", tmp_path / "live__a")
        second = store.prepare("live__b", tmp_path / "live__b")
        store.schedule_removal("live__a", 30.0)

        assert store.purge_all() == 2
        assert not first.exists()
        assert not second.exists()
        assert scheduler.pending == 0

    def test_missing_directory_is_tolerated(self, tmp_path):
        store = SegmentArtifactStore(ManualScheduler())
        directory = store.prepare("live__abc123", tmp_path / "live__abc123")
        directory.rmdir()

        assert store.remove_now("live__abc123") is True
        assert store.remove_now("live__abc123") is False

    @pytest.mark.parametrize("relative", [".", "..", "../elsewhere"])
    def test_prepare_rejects_directory_outside_root(self, tmp_path, relative):
        root = tmp_path / "media"
        store = SegmentArtifactStore(ManualScheduler())

        with pytest.raises(ValueError):
            store.prepare("live__abc123", root / relative, root=root)

        assert store.directory_for("live__abc123") is None
        assert not (tmp_path / "elsewhere").exists()

    def test_prepare_accepts_directory_inside_root(self, tmp_path):
        root = tmp_path / "media"
        store = SegmentArtifactStore(ManualScheduler())

        directory = store.prepare("live__abc123", root / "live__abc123", root=root)

        assert directory.is_dir()
        assert store.directory_for("live__abc123") == directory


class TestSegmentationCleanup:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["..", ".", "live/..", "../media"])
    async def test_relative_publish_path_never_touches_media_root(self, build_supervisor, tmp_path, path):
        sup = build_supervisor(make_settings(tmp_path, segmentation=True))
        media_root = tmp_path / "media"
        media_root.mkdir()
        keep = tmp_path / "keep.txt"
        keep.write_text("x")

        with pytest.raises(UnresolvedStreamIdentity):
            sup.start(path)
        sup.scheduler.advance(60.0)
        await drain()

        assert len(sup.registry) == 0
        assert sup.launcher.launch_count == 0
        assert keep.exists()
        assert media_root.is_dir()

    @pytest.mark.asyncio
    async def test_stop_deletes_directory_after_cleanup_delay(self, build_supervisor, tmp_path):
        sup = build_supervisor(make_settings(tmp_path, segmentation=True))
        sup.start("live/abc123")
        await drain()
        seg_dir = tmp_path / "media" / "live__abc123"
        assert seg_dir.is_dir()

        sup.stop("live/abc123")
        await drain()

        sup.scheduler.advance(29.0)
        assert seg_dir.exists()
        sup.scheduler.advance(1.0)
        assert not seg_dir.exists()

    @pytest.mark.asyncio
    async def test_segmentation_exit_schedules_cleanup(self, build_supervisor, tmp_path):
        sup = build_supervisor(make_settings(tmp_path, segmentation=True))
        sup.start("live/abc123")
        await drain()
        seg_dir = tmp_path / "media" / "live__abc123"

        sup.launcher.for_output("index.m3u8")[0].exit(1)
        await drain()

        assert sup.artifacts.is_pending("live__abc123")
        sup.scheduler.advance(30.0)
        assert not seg_dir.exists()

    @pytest.mark.asyncio
    async def test_shutdown_deletes_directory_immediately(self, build_supervisor, tmp_path):
        sup = build_supervisor(make_settings(tmp_path, segmentation=True))
        sup.start("live/abc123")
        await drain()
        seg_dir = tmp_path / "media" / "live__abc123"

        assert sup.registry.shutdown_all(signal.SIGTERM) == 1

        assert not seg_dir.exists()
        await drain()
        assert sup.launcher.alive() == []

    @pytest.mark.asyncio
    async def test_restart_within_delay_keeps_directory(self, build_supervisor, tmp_path):
        sup = build_supervisor(
            make_settings(tmp_path, destinations=make_destinations("alpha"), segmentation=True)
        )
        sup.start("live/abc123")
        await drain()
        sup.stop("live/abc123")
        await drain()

        sup.scheduler.advance(10.0)
        sup.start("live/abc123")
        await drain()
        sup.scheduler.advance(60.0)
        await drain()

        assert (tmp_path / "media" / "live__abc123").is_dir()
        assert len(sup.launcher.for_output("index.m3u8")) == 2
