"""
릴레이 관리자

하나의 스트림에 대해 목적지별 릴레이 프로세스와 로컬 세그멘테이션 프로세스의
생명주기(시차 시작, 자동 재연결, 일괄 종료)를 관리합니다.
"""

from __future__ import annotations

import signal
from typing import TYPE_CHECKING, Any, Callable, Protocol

from stream_relay.common.errors import SpawnError
from stream_relay.common.logging import get_logger
from stream_relay.domain.models.relay import ExitReport, RelaySettings, RelayTarget
from stream_relay.domain.models.stream import StreamIdentity

if TYPE_CHECKING:
    from pathlib import Path

    from stream_relay.application.scheduler import Scheduler, TimerHandle
    from stream_relay.application.stream.artifacts import SegmentArtifactStore
    from stream_relay.application.stream.registry import StreamRegistry


class RelayHandleProtocol(Protocol):
    """릴레이 프로세스 핸들 인터페이스 정의"""
    target: RelayTarget

    @property
    def target_name(self) -> str: ...
    @property
    def is_alive(self) -> bool: ...
    @property
    def is_running(self) -> bool: ...
    def start(self) -> None: ...
    def terminate(self, sig: int = signal.SIGINT) -> None: ...
    def describe(self) -> dict[str, Any]: ...


class HandleFactoryProtocol(Protocol):
    """핸들 생성기 인터페이스 정의"""
    def create(
        self,
        identity: StreamIdentity,
        target: RelayTarget,
        input_url: str,
        on_exit: Callable[[Any, ExitReport], None],
        output_dir: "Path | None" = None,
    ) -> RelayHandleProtocol: ...


class RelayManager:
    """
    스트림 하나의 릴레이 관리자.

    타깃 이름별로 최대 하나의 핸들만 소유합니다. 지연 시작과 재연결 타이머는
    실행 직전에 이 관리자가 여전히 레지스트리에 등록되어 있는지 다시 확인하므로,
    그 사이에 stop_all이 실행되었다면 아무 것도 기동하지 않습니다.
    """

    def __init__(
        self,
        identity: StreamIdentity,
        settings: RelaySettings,
        registry: "StreamRegistry",
        handle_factory: HandleFactoryProtocol,
        scheduler: "Scheduler",
        artifacts: "SegmentArtifactStore",
    ) -> None:
        self.identity = identity
        self._settings = settings
        self._registry = registry
        self._factory = handle_factory
        self._scheduler = scheduler
        self._artifacts = artifacts

        self._handles: dict[str, RelayHandleProtocol] = {}
        self._timers: dict[str, "TimerHandle"] = {}
        self._input_url: str | None = None
        self._stopping = False
        self.created_at = scheduler.now()

        self._logger = get_logger(__name__, stream_key=identity.key)

    @property
    def stream_key(self) -> str:
        return self.identity.key

    @property
    def input_url(self) -> str | None:
        return self._input_url

    @property
    def is_stopping(self) -> bool:
        return self._stopping

    @property
    def handles(self) -> dict[str, RelayHandleProtocol]:
        return dict(self._handles)

    @property
    def pending_targets(self) -> list[str]:
        return sorted(self._timers)

    def start_all(self, input_url: str) -> None:
        """
        설정된 모든 타깃을 시차를 두고 기동합니다.

        세그멘테이션은 지연 없이 가장 먼저 시작하고, 활성화된 목적지는
        설정 순서대로 i번째가 i × stagger초 후에 시작합니다.
        이미 핸들이나 예약이 있는 타깃은 건너뜁니다.

        Args:
            input_url: 인제스트 서버에서 스트림을 읽어올 URL
        """
        if self._stopping:
            self._logger.warning("중지 중인 관리자에 대한 시작 요청 무시")
            return

        self._input_url = input_url
        segmentation = self._settings.segmentation
        destinations = self._settings.enabled_destinations

        self._logger.info(
            f"릴레이 시작: 목적지 {len(destinations)}개"
            f"{', 세그멘테이션 포함' if segmentation.enabled else ''}",
            input_url=input_url,
        )

        if segmentation.enabled:
            self._start_or_schedule(segmentation, 0.0)

        stagger = self._settings.timings.stagger
        for index, destination in enumerate(destinations):
            self._start_or_schedule(destination, index * stagger)

        self._release_if_idle()

    def start_target(self, target: RelayTarget) -> bool:
        """
        단일 타깃을 기동합니다.

        Returns:
            새 핸들을 기동했으면 True
        """
        if target.name in self._handles:
            return False
        if self._input_url is None:
            self._logger.warning("입력 URL 없이 타깃 시작 요청", target=target.name)
            return False

        output_dir = None
        if target.is_segmentation:
            try:
                output_dir = self._artifacts.prepare(
                    self.stream_key,
                    target.output_dir(self.stream_key),
                    root=target.media_root,
                )
            except (OSError, ValueError) as e:
                self._logger.error(
                    f"세그멘테이션 디렉토리 생성 실패: {e}", target=target.name
                )
                return False

        try:
            handle = self._factory.create(
                self.identity,
                target,
                self._input_url,
                self._on_handle_exit,
                output_dir,
            )
        except SpawnError as e:
            self._logger.error(f"핸들 생성 실패: {e.message}", target=target.name)
            return False

        self._handles[target.name] = handle
        handle.start()
        return True

    def stop_all(self) -> None:
        """
        모든 핸들에 종료 시그널을 보내고 레지스트리에서 제거합니다.

        세그멘테이션을 먼저 종료해 산출물 삭제 지연을 바로 시작합니다.
        """
        self._stopping = True
        self._cancel_timers()

        segmentation = self._settings.segmentation
        seg_handle = self._handles.pop(segmentation.name, None)
        if seg_handle is not None:
            seg_handle.terminate(signal.SIGINT)
        if segmentation.enabled:
            self._artifacts.schedule_removal(self.stream_key, segmentation.cleanup_delay)

        for handle in list(self._handles.values()):
            handle.terminate(signal.SIGINT)

        self._registry.remove(self.stream_key, self)
        self._logger.info(
            "릴레이 중지",
            stopped_targets=len(self._handles) + (1 if seg_handle else 0),
        )

    def shutdown(self, sig: int = signal.SIGTERM) -> None:
        """프로세스 종료 경로. 산출물은 지연 없이 즉시 삭제합니다."""
        self._stopping = True
        self._cancel_timers()
        for handle in list(self._handles.values()):
            handle.terminate(sig)
        self._registry.remove(self.stream_key, self)
        self._artifacts.remove_now(self.stream_key)
        self._logger.info("릴레이 강제 정리", signal=int(sig), targets=len(self._handles))

    def _start_or_schedule(self, target: RelayTarget, delay: float) -> None:
        if target.name in self._handles or target.name in self._timers:
            self._logger.debug("이미 실행 중이거나 예약된 타깃", target=target.name)
            return
        if delay <= 0:
            self.start_target(target)
            return
        self._timers[target.name] = self._scheduler.call_later(
            delay, self._on_timer, target, "start"
        )

    def _on_timer(self, target: RelayTarget, reason: str) -> None:
        self._timers.pop(target.name, None)

        if self._stopping or not self._registry.is_registered(self):
            self._logger.info(
                f"스트림이 등록 해제되어 예약된 {reason} 건너뜀",
                target=target.name,
            )
            self._release_if_idle()
            return

        if reason == "reconnect":
            self._logger.info("재연결 시도", target=target.name)
        self.start_target(target)
        self._release_if_idle()

    def _on_handle_exit(self, handle: RelayHandleProtocol, report: ExitReport) -> None:
        target = handle.target
        if self._handles.get(target.name) is handle:
            del self._handles[target.name]

        condition = report.condition
        if report.spawn_failed:
            self._logger.error(f"타깃 기동 실패: {condition.message}", target=target.name)
        elif report.was_forced:
            self._logger.warning(f"타깃 강제 종료: {condition.message}", target=target.name)
        else:
            self._logger.info(f"타깃 종료: {condition.message}", target=target.name)

        active = not self._stopping and self._registry.is_registered(self)

        if active and target.is_segmentation:
            self._artifacts.schedule_removal(self.stream_key, target.cleanup_delay)

        if active and not report.spawn_failed and target.auto_reconnect:
            if self._has_alive_sibling(target.name):
                self._schedule_reconnect(target)
            else:
                self._logger.info("실행 중인 형제 타깃이 없어 재연결하지 않음", target=target.name)

        self._release_if_idle()

    def _schedule_reconnect(self, target: RelayTarget) -> None:
        if target.name in self._timers:
            return
        delay = self._settings.timings.reconnect_delay
        self._timers[target.name] = self._scheduler.call_later(
            delay, self._on_timer, target, "reconnect"
        )
        self._logger.info(f"재연결 예약 ({delay:.0f}초 후)", target=target.name)

    def _has_alive_sibling(self, target_name: str) -> bool:
        """강제 종료 중인 핸들은 형제로 치지 않습니다."""
        return any(
            name != target_name and handle.is_running
            for name, handle in self._handles.items()
        )

    def _cancel_timers(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        if self._timers:
            self._logger.debug("예약 작업 취소", targets=sorted(self._timers))
        self._timers.clear()

    def _release_if_idle(self) -> None:
        """핸들과 예약이 모두 없으면 레지스트리에서 스스로 제거합니다."""
        if self._handles or self._timers:
            return
        if self._registry.remove(self.stream_key, self):
            self._logger.info("소유한 프로세스가 없어 스트림 등록 해제")

    def describe(self) -> dict[str, Any]:
        """상태 정보 반환."""
        return {
            "stream_key": self.stream_key,
            "path": self.identity.path,
            "input_url": self._input_url,
            "stopping": self._stopping,
            "uptime_seconds": round(self._scheduler.now() - self.created_at, 1),
            "targets": [h.describe() for h in self._handles.values()],
            "pending": self.pending_targets,
        }
