"""
RelayManager 테스트

시차 시작, 시작/중지 경합, 자동 재연결, 스스로 등록 해제를 검증합니다.
"""

import signal
from dataclasses import replace

import pytest

from stream_relay.domain.models.relay import ProcessState
from tests.doubles import drain
from tests.factories import make_destinations, make_settings


class TestStaggeredStart:
    @pytest.mark.asyncio
    async def test_destinations_start_at_stagger_offsets(self, build_supervisor, tmp_path):
        sup = build_supervisor(make_settings(tmp_path))

        manager = sup.start("live/abc123")
        await drain()
        assert [p.output_target for p in sup.launcher.processes] == [
            "rtmp://alpha.example.com/app/key-alpha"
        ]
        assert manager.pending_targets == ["bravo", "charlie"]

        sup.scheduler.advance(0.49)
        await drain()
        assert sup.launcher.launch_count == 1

        sup.scheduler.advance(0.01)
        await drain()
        assert len(sup.launcher.for_output("bravo")) == 1

        sup.scheduler.advance(0.5)
        await drain()
        assert len(sup.launcher.for_output("charlie")) == 1

        started = {name: h.started_at for name, h in manager.handles.items()}
        assert started == {"alpha": 0.0, "bravo": 0.5, "charlie": 1.0}

    @pytest.mark.asyncio
    async def test_segmentation_starts_first_without_delay(self, build_supervisor, tmp_path):
        sup = build_supervisor(make_settings(tmp_path, segmentation=True))

        sup.start("live/abc123")
        await drain()

        first, second = sup.launcher.processes
        assert first.output_target.endswith("index.m3u8")
        assert "alpha" in second.output_target
        assert (tmp_path / "media" / "live__abc123").is_dir()

    @pytest.mark.asyncio
    async def test_disabled_destination_is_not_spawned(self, build_supervisor, tmp_path):
        alpha, bravo = make_destinations("alpha", "bravo")
        destinations = (alpha, replace(bravo, enabled=False))
        sup = build_supervisor(make_settings(tmp_path, destinations=destinations))

        sup.start("live/abc123")
        sup.scheduler.advance(2.0)
        await drain()

        assert sup.launcher.launch_count == 1
        assert sup.launcher.for_output("bravo") == []


class TestStartStopRace:
    @pytest.mark.asyncio
    async def test_stop_cancels_pending_spawns(self, build_supervisor, tmp_path):
        sup = build_supervisor(make_settings(tmp_path))

        sup.start("live/abc123")
        await drain()
        sup.scheduler.advance(0.2)
        assert sup.stop("live/abc123") is True

        sup.scheduler.advance(5.0)
        await drain()

        assert sup.launcher.launch_count == 1
        alpha = sup.launcher.for_output("alpha")[0]
        assert alpha.signals == [signal.SIGINT]
        assert sup.launcher.alive() == []
        assert "live__abc123" not in sup.registry
        assert sup.scheduler.pending == 0

    @pytest.mark.asyncio
    async def test_stop_before_first_spawn_completes(self, build_supervisor, tmp_path):
        sup = build_supervisor(make_settings(tmp_path))

        sup.start("live/abc123")
        sup.stop("live/abc123")
        sup.scheduler.advance(5.0)
        await drain()

        assert sup.launcher.launch_count == 1
        assert sup.launcher.alive() == []
        assert sup.launcher.processes[0].signals == [signal.SIGINT]

    @pytest.mark.asyncio
    async def test_stale_timer_after_unregister_spawns_nothing(self, build_supervisor, tmp_path):
        sup = build_supervisor(make_settings(tmp_path))

        manager = sup.start("live/abc123")
        sup.registry.remove(manager.stream_key)
        sup.scheduler.advance(2.0)
        await drain()

        assert sup.launcher.launch_count == 1


class TestIdempotentStart:
    @pytest.mark.asyncio
    async def test_repeated_start_does_not_duplicate(self, build_supervisor, tmp_path):
        sup = build_supervisor(make_settings(tmp_path))

        first = sup.start("live/abc123")
        second = sup.start("live/abc123")
        sup.scheduler.advance(2.0)
        await drain()
        third = sup.start("live/abc123")
        sup.scheduler.advance(2.0)
        await drain()

        assert first is second is third
        assert sup.launcher.launch_count == 3
        for name in ("alpha", "bravo", "charlie"):
            assert len(sup.launcher.for_output(name)) == 1

    @pytest.mark.asyncio
    async def test_paths_with_same_identity_share_manager(self, build_supervisor, tmp_path):
        sup = build_supervisor(make_settings(tmp_path, destinations=make_destinations("alpha")))

        first = sup.start("live/abc123")
        second = sup.start("/live//abc123/")
        await drain()

        assert first is second
        assert sup.launcher.launch_count == 1


class TestReconnect:
    @pytest.mark.asyncio
    async def test_reconnects_after_delay_when_sibling_alive(self, build_supervisor, tmp_path):
        sup = build_supervisor(
            make_settings(tmp_path, destinations=make_destinations("alpha", "bravo", auto_reconnect=True))
        )
        manager = sup.start("live/abc123")
        sup.scheduler.advance(1.0)
        await drain()

        sup.launcher.for_output("alpha")[0].exit(1)
        await drain()
        assert manager.pending_targets == ["alpha"]

        sup.scheduler.advance(4.9)
        await drain()
        assert len(sup.launcher.for_output("alpha")) == 1

        sup.scheduler.advance(0.1)
        await drain()
        assert len(sup.launcher.for_output("alpha")) == 2
        assert manager.handles["alpha"].is_alive

    @pytest.mark.asyncio
    async def test_no_reconnect_without_sibling(self, build_supervisor, tmp_path):
        sup = build_supervisor(
            make_settings(tmp_path, destinations=make_destinations("alpha", auto_reconnect=True))
        )
        sup.start("live/abc123")
        await drain()

        sup.launcher.processes[0].exit(1)
        await drain()
        sup.scheduler.advance(10.0)
        await drain()

        assert sup.launcher.launch_count == 1
        assert "live__abc123" not in sup.registry

    @pytest.mark.asyncio
    async def test_no_reconnect_when_disabled(self, build_supervisor, tmp_path):
        sup = build_supervisor(make_settings(tmp_path))
        sup.start("live/abc123")
        sup.scheduler.advance(1.0)
        await drain()

        sup.launcher.for_output("alpha")[0].exit(0)
        await drain()
        sup.scheduler.advance(10.0)
        await drain()

        assert len(sup.launcher.for_output("alpha")) == 1

    @pytest.mark.asyncio
    async def test_stop_cancels_pending_reconnect(self, build_supervisor, tmp_path):
        sup = build_supervisor(
            make_settings(tmp_path, destinations=make_destinations("alpha", "bravo", auto_reconnect=True))
        )
        sup.start("live/abc123")
        sup.scheduler.advance(1.0)
        await drain()

        sup.launcher.for_output("alpha")[0].exit(1)
        await drain()
        sup.stop("live/abc123")
        sup.scheduler.advance(10.0)
        await drain()

        assert sup.launcher.launch_count == 2
        assert sup.launcher.alive() == []

    @pytest.mark.asyncio
    async def test_stalled_target_is_reconnected(self, build_supervisor, tmp_path):
        destinations = (
            make_destinations("alpha", auto_reconnect=True)
            + make_destinations("bravo", watchdog=False)
        )
        sup = build_supervisor(make_settings(tmp_path, destinations=destinations))
        sup.start("live/abc123")
        await drain()

        sup.scheduler.advance(40.0)
        await drain()
        stalled = sup.launcher.for_output("alpha")[0]
        assert stalled.signals == [signal.SIGKILL]

        sup.scheduler.advance(5.0)
        await drain()
        assert len(sup.launcher.for_output("alpha")) == 2

    @pytest.mark.asyncio
    async def test_sibling_being_killed_does_not_count_as_alive(self, build_supervisor, tmp_path):
        destinations = (
            make_destinations("alpha", auto_reconnect=True, watchdog=False)
            + make_destinations("bravo")
        )
        sup = build_supervisor(make_settings(tmp_path, destinations=destinations))
        manager = sup.start("live/abc123")
        sup.scheduler.advance(0.5)
        await drain()
        bravo = sup.launcher.for_output("bravo")[0]
        bravo.exit_on_kill = False

        sup.scheduler.advance(41.0)
        await drain()
        assert bravo.signals == [signal.SIGKILL]
        assert manager.handles["bravo"].state == ProcessState.STALLED

        sup.launcher.for_output("alpha")[0].exit(1)
        await drain()
        assert manager.pending_targets == []

        bravo.exit(-signal.SIGKILL)
        await drain()
        sup.scheduler.advance(10.0)
        await drain()

        assert len(sup.launcher.for_output("alpha")) == 1
        assert "live__abc123" not in sup.registry

    @pytest.mark.asyncio
    async def test_spawn_failure_is_not_retried(self, build_supervisor, tmp_path):
        sup = build_supervisor(
            make_settings(tmp_path, destinations=make_destinations("alpha", "bravo", auto_reconnect=True))
        )
        sup.launcher.fail_with = FileNotFoundError("ffmpeg")
        sup.launcher.fail_match = "bravo"

        manager = sup.start("live/abc123")
        sup.scheduler.advance(0.5)
        await drain()
        sup.scheduler.advance(30.0)
        await drain()

        assert len(sup.launcher.kwargs) == 2
        assert sup.launcher.for_output("bravo") == []
        assert list(manager.handles) == ["alpha"]
        assert manager.pending_targets == []


class TestSelfRemoval:
    @pytest.mark.asyncio
    async def test_manager_unregisters_when_log_files_cannot_open(self, build_supervisor, tmp_path):
        sup = build_supervisor(
            make_settings(tmp_path, destinations=make_destinations("alpha")),
            log_dir=tmp_path / "lo\x00gs",
        )

        sup.start("live/abc123")
        sup.scheduler.advance(5.0)
        await drain()

        assert sup.launcher.launch_count == 0
        assert "live__abc123" not in sup.registry
        assert sup.scheduler.pending == 0

    @pytest.mark.asyncio
    async def test_manager_unregisters_when_all_targets_exit(self, build_supervisor, tmp_path):
        sup = build_supervisor(make_settings(tmp_path, destinations=make_destinations("alpha", "bravo")))
        sup.start("live/abc123")
        sup.scheduler.advance(0.5)
        await drain()

        sup.launcher.for_output("alpha")[0].exit(0)
        await drain()
        assert "live__abc123" in sup.registry

        sup.launcher.for_output("bravo")[0].exit(0)
        await drain()
        assert "live__abc123" not in sup.registry

    @pytest.mark.asyncio
    async def test_manager_stays_while_spawn_pending(self, build_supervisor, tmp_path):
        sup = build_supervisor(make_settings(tmp_path, destinations=make_destinations("alpha", "bravo")))
        sup.start("live/abc123")
        await drain()

        sup.launcher.for_output("alpha")[0].exit(0)
        await drain()
        assert "live__abc123" in sup.registry

        sup.scheduler.advance(0.5)
        await drain()
        assert len(sup.launcher.for_output("bravo")) == 1


class TestScenario:
    @pytest.mark.asyncio
    async def test_publish_then_quick_stop(self, build_supervisor, tmp_path):
        """live/abc123 with three targets, stopped at 200ms."""
        sup = build_supervisor(make_settings(tmp_path))

        manager = sup.start("live/abc123")
        assert manager.stream_key == "live__abc123"
        assert manager.input_url == "rtmp://127.0.0.1:1935/live/abc123"
        await drain()

        sup.scheduler.advance(0.2)
        sup.stop("live/abc123")
        sup.scheduler.advance(1.0)
        await drain()

        assert [p.output_target for p in sup.launcher.processes] == [
            "rtmp://alpha.example.com/app/key-alpha"
        ]
        assert len(sup.registry) == 0


class TestDescribe:
    @pytest.mark.asyncio
    async def test_describe_lists_targets_and_pending(self, build_supervisor, tmp_path):
        sup = build_supervisor(make_settings(tmp_path))
        manager = sup.start("live/abc123")
        await drain()

        info = manager.describe()

        assert info["stream_key"] == "live__abc123"
        assert info["path"] == "live/abc123"
        assert info["stopping"] is False
        assert [t["target"] for t in info["targets"]] == ["alpha"]
        assert info["pending"] == ["bravo", "charlie"]

