# -*- coding: utf-8 -*-
"""
FFmpeg 릴레이 서브프로세스 핸들.

서브프로세스 하나의 생존 여부, 출력 정지 워치독, 종료 처리를 담당합니다.
모든 콜백은 슈퍼바이저와 같은 이벤트 루프에서 실행됩니다.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from stream_relay.common.errors import SpawnError, StallDetected, SubprocessExit
from stream_relay.common.logging import get_logger
from stream_relay.domain.models.relay import (
    ExitReport,
    ProcessState,
    RelaySettings,
    RelayTarget,
    RelayTimings,
)
from stream_relay.domain.models.stream import StreamIdentity
from stream_relay.infrastructure.relay.commands import (
    build_relay_command,
    build_segment_command,
)
from stream_relay.infrastructure.relay.log_sink import LogSink

if TYPE_CHECKING:
    from pathlib import Path

    from stream_relay.application.scheduler import Scheduler, TimerHandle


# 서브프로세스 기동 함수 (asyncio.create_subprocess_exec 호환)
Launcher = Callable[..., Awaitable[Any]]
ExitCallback = Callable[["RelayProcess", ExitReport], None]


class RelayProcess:
    """
    릴레이 서브프로세스 핸들.

    stdin은 닫고 stdout/stderr는 캡처하여 LogSink에 기록합니다.
    출력이 들어올 때마다 마지막 활동 시각을 갱신하고, 워치독이 켜진 타깃은
    주기적으로 무출력 시간을 점검해 임계치를 넘으면 SIGKILL로 강제 종료합니다.

    종료(자연 종료, 강제 종료, 기동 실패) 시 워치독을 멈추고 로그 싱크를 닫은 뒤
    소유자에게 ExitReport를 정확히 한 번 보고합니다.
    """

    READ_CHUNK_SIZE = 4096

    def __init__(
        self,
        stream_key: str,
        target: RelayTarget,
        argv: list[str],
        sink: LogSink,
        scheduler: "Scheduler",
        timings: RelayTimings,
        on_exit: ExitCallback,
        launcher: Launcher | None = None,
    ) -> None:
        """
        RelayProcess 초기화.

        Args:
            stream_key: 스트림 키
            target: 릴레이 타깃 (목적지 또는 세그멘테이션)
            argv: 실행 명령
            sink: 출력 캡처 싱크 (핸들이 소유하며 종료 시 닫음)
            scheduler: 워치독 타이머와 시계를 제공하는 스케줄러
            timings: 워치독 주기/임계치
            on_exit: 종료 보고 콜백
            launcher: 서브프로세스 기동 함수 (기본 asyncio.create_subprocess_exec)
        """
        self.stream_key = stream_key
        self.target = target
        self.argv = argv
        self._sink = sink
        self._scheduler = scheduler
        self._timings = timings
        self._on_exit = on_exit
        self._launcher = launcher or asyncio.create_subprocess_exec

        self._process: Any = None
        self._task: asyncio.Task | None = None
        self._watchdog: TimerHandle | None = None
        self._state = ProcessState.SPAWNING
        self._forced = False
        self._stall: StallDetected | None = None
        self._pending_signal: int | None = None
        self._reported = False
        self._exit_code: int | None = None

        self.started_at = scheduler.now()
        self.last_activity = self.started_at

        self._logger = get_logger(__name__, stream_key=stream_key, target=target.name)

    @property
    def target_name(self) -> str:
        return self.target.name

    @property
    def state(self) -> ProcessState:
        return self._state

    @property
    def is_alive(self) -> bool:
        """기동 중이거나 실행 중인지 여부."""
        return self._state.is_alive

    @property
    def is_running(self) -> bool:
        """워치독에 의해 강제 종료 중이 아닌 살아 있는 상태인지 여부."""
        return self._state.is_running

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    @property
    def was_forced(self) -> bool:
        return self._forced

    def start(self) -> None:
        """실행 중인 이벤트 루프에 기동 작업을 예약합니다."""
        if self._task is not None:
            return
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(
            self._run(), name=f"relay_{self.stream_key}_{self.target.name}"
        )

    async def wait_closed(self) -> None:
        """핸들 작업이 끝날 때까지 대기합니다."""
        if self._task is not None:
            await asyncio.shield(self._task)

    def terminate(self, sig: int = signal.SIGINT) -> None:
        """
        외부 요청에 의한 종료 시그널을 보냅니다.

        아직 기동 중이면 프로세스가 생기는 즉시 전달합니다.
        SIGKILL은 워치독만 사용합니다.
        """
        if not self.is_alive:
            return
        if self._process is None:
            self._pending_signal = sig
            return
        self._send_signal(sig)

    async def _run(self) -> None:
        try:
            await self._supervise()
        finally:
            # 어떤 경로로 끝나도 종료 보고는 한 번 남깁니다
            if not self._reported:
                returncode = self._process.returncode if self._process is not None else None
                self._finish(returncode)

    async def _supervise(self) -> None:
        try:
            self._process = await self._launcher(
                *self.argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (OSError, ValueError) as e:
            self._fail(e)
            return

        self._state = ProcessState.RUNNING
        self.last_activity = self._scheduler.now()
        self._logger.info("FFmpeg 서브프로세스 시작", pid=self._process.pid)

        if self._pending_signal is not None:
            self._send_signal(self._pending_signal)
        if self.target.watchdog:
            self._arm_watchdog()

        await asyncio.gather(
            self._pump(self._process.stdout, self._sink.write_out),
            self._pump(self._process.stderr, self._sink.write_err),
        )
        exit_code = await self._process.wait()
        self._finish(exit_code)

    async def _pump(
        self,
        stream: asyncio.StreamReader | None,
        write: Callable[[bytes], None],
    ) -> None:
        """파이프를 EOF까지 읽어 싱크에 기록합니다."""
        if stream is None:
            return
        write_failed = False
        while True:
            chunk = await stream.read(self.READ_CHUNK_SIZE)
            if not chunk:
                break
            self.last_activity = self._scheduler.now()
            if write_failed:
                continue
            try:
                write(chunk)
            except OSError as e:
                # 파이프가 막히지 않도록 계속 읽기만 합니다
                write_failed = True
                self._logger.error("출력 로그 기록 실패", error=str(e))

    def _arm_watchdog(self) -> None:
        self._watchdog = self._scheduler.call_later(
            self._timings.watchdog_interval, self._watchdog_tick
        )

    def _watchdog_tick(self) -> None:
        """무출력 시간이 임계치를 넘으면 강제 종료합니다."""
        self._watchdog = None
        if self._state != ProcessState.RUNNING:
            return

        idle = self._scheduler.now() - self.last_activity
        if idle > self._timings.stall_threshold:
            self._stall = StallDetected(self.stream_key, self.target.name, idle)
            self._logger.warning(
                f"출력 정지 감지 ({idle:.1f}초 무출력), 강제 종료",
                idle_seconds=round(idle, 1),
            )
            self._state = ProcessState.STALLED
            self._forced = True
            self._kill()
            return

        self._arm_watchdog()

    def _send_signal(self, sig: int) -> None:
        try:
            self._process.send_signal(sig)
        except ProcessLookupError:
            self._logger.debug("시그널 대상 프로세스가 이미 종료됨", signal=int(sig))

    def _kill(self) -> None:
        try:
            self._process.kill()
        except ProcessLookupError:
            self._logger.debug("강제 종료 대상 프로세스가 이미 종료됨")

    def _cancel_watchdog(self) -> None:
        if self._watchdog is not None:
            self._watchdog.cancel()
            self._watchdog = None

    def _finish(self, exit_code: int | None) -> None:
        self._cancel_watchdog()
        self._sink.close()
        self._exit_code = exit_code
        self._state = ProcessState.EXITED

        self._logger.info(
            f"FFmpeg 서브프로세스 종료 (code: {exit_code})",
            exit_code=exit_code,
            forced=self._forced,
        )
        condition = self._stall or SubprocessExit(
            self.stream_key, self.target.name, exit_code
        )
        self._report(ExitReport(exit_code=exit_code, was_forced=self._forced, condition=condition))

    def _fail(self, error: Exception) -> None:
        self._cancel_watchdog()
        self._state = ProcessState.FAILED
        spawn_error = SpawnError(
            f"FFmpeg 기동 실패: {error}",
            self.stream_key,
            self.target.name,
            details={"executable": self.argv[0], "error": str(error)},
        )
        self._logger.error(
            spawn_error.message,
            code=spawn_error.code.value,
            executable=self.argv[0],
        )
        self._sink.write_note(f"Spawn error: {error}")
        self._sink.close()
        self._report(ExitReport(exit_code=None, was_forced=False, condition=spawn_error))

    def _report(self, report: ExitReport) -> None:
        if self._reported:
            return
        self._reported = True
        try:
            self._on_exit(self, report)
        except Exception as e:
            self._logger.exception(f"종료 보고 콜백 오류: {e}")

    def describe(self) -> dict[str, Any]:
        """상태 정보 반환."""
        now = self._scheduler.now()
        return {
            "target": self.target.name,
            "kind": "segmentation" if self.target.is_segmentation else "destination",
            "state": self._state.value,
            "pid": self.pid,
            "uptime_seconds": round(now - self.started_at, 1),
            "idle_seconds": round(now - self.last_activity, 1),
            "watchdog": self.target.watchdog,
            "was_forced": self._forced,
            "exit_code": self._exit_code,
        }


class RelayProcessFactory:
    """
    RelayProcess 생성기.

    타깃 종류에 맞는 명령을 구성하고 로그 싱크를 연 뒤 핸들을 만듭니다.
    """

    def __init__(
        self,
        settings: RelaySettings,
        scheduler: "Scheduler",
        launcher: Launcher | None = None,
    ) -> None:
        self._settings = settings
        self._scheduler = scheduler
        self._launcher = launcher

    def create(
        self,
        identity: StreamIdentity,
        target: RelayTarget,
        input_url: str,
        on_exit: ExitCallback,
        output_dir: "Path | None" = None,
    ) -> RelayProcess:
        """
        핸들을 생성합니다 (아직 기동하지 않음).

        Raises:
            SpawnError: 로그 파일을 열 수 없을 때
        """
        if target.is_segmentation:
            argv = build_segment_command(
                self._settings.ffmpeg,
                input_url,
                target,
                output_dir or target.output_dir(identity.key),
            )
        else:
            argv = build_relay_command(self._settings.ffmpeg, input_url, target)

        try:
            sink = LogSink.open(self._settings.log_dir, identity.key, target.name)
        except (OSError, ValueError) as e:
            raise SpawnError(
                f"출력 로그를 열 수 없습니다: {e}",
                identity.key,
                target.name,
                details={"log_dir": str(self._settings.log_dir)},
            ) from e

        return RelayProcess(
            stream_key=identity.key,
            target=target,
            argv=argv,
            sink=sink,
            scheduler=self._scheduler,
            timings=self._settings.timings,
            on_exit=on_exit,
            launcher=self._launcher,
        )
