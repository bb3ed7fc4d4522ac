"""
라이프사이클 이벤트 브리지

인제스트 서버의 두 가지 알림(스트림 시작/종료)과 두 가지 OS 종료 시그널을
스트림 레지스트리 동작으로 변환합니다.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING, Callable

from stream_relay.application.stream.manager import HandleFactoryProtocol, RelayManager
from stream_relay.common.logging import get_logger
from stream_relay.domain.models.relay import RelaySettings
from stream_relay.domain.models.session import (
    PublishNotification,
    ResolvedSession,
    SessionResolver,
)
from stream_relay.domain.models.stream import StreamIdentity

if TYPE_CHECKING:
    from stream_relay.application.scheduler import Scheduler
    from stream_relay.application.stream.artifacts import SegmentArtifactStore
    from stream_relay.application.stream.registry import StreamRegistry

logger = get_logger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class LifecycleEventBridge:
    """
    라이프사이클 이벤트 브리지

    레지스트리 인스턴스를 명시적으로 소유하며 전역 상태를 사용하지 않습니다.

    Example:
        >>> bridge = LifecycleEventBridge(registry, resolver, settings, factory, scheduler, artifacts)
        >>> bridge.on_stream_started(PublishNotification(app="live", name="abc123"))
    """

    def __init__(
        self,
        registry: "StreamRegistry",
        resolver: SessionResolver,
        settings: RelaySettings,
        handle_factory: HandleFactoryProtocol,
        scheduler: "Scheduler",
        artifacts: "SegmentArtifactStore",
        exit_callback: Callable[[], None] | None = None,
    ) -> None:
        self._registry = registry
        self._resolver = resolver
        self._settings = settings
        self._handle_factory = handle_factory
        self._scheduler = scheduler
        self._artifacts = artifacts
        self._exit_callback = exit_callback
        self._shutdown_signal: int | None = None

    @property
    def registry(self) -> "StreamRegistry":
        return self._registry

    @property
    def is_shutting_down(self) -> bool:
        return self._shutdown_signal is not None

    def set_exit_callback(self, callback: Callable[[], None] | None) -> None:
        self._exit_callback = callback

    def on_stream_started(self, notification: PublishNotification) -> RelayManager | None:
        """
        스트림 시작 알림 처리.

        Returns:
            해당 스트림의 관리자 (종료 중이면 None)

        Raises:
            UnresolvedStreamIdentity: 알림에서 스트림 경로를 결정할 수 없을 때
        """
        session = self._resolve(notification, "stream-started")
        identity = session.identity

        if self.is_shutting_down:
            logger.warning("종료 중이므로 스트림 시작 무시", stream_key=identity.key)
            return None

        input_url = identity.input_url(
            self._settings.ingest.rtmp_base_url,
            self._settings.ingest.default_app,
        )
        manager = self._registry.get_or_create(identity, self._create_manager)
        logger.info(
            f"스트림 시작 알림: {identity.path}",
            stream_key=identity.key,
            source=session.source,
            session_id=notification.session_id,
        )
        manager.start_all(input_url)
        return manager

    def on_stream_stopped(self, notification: PublishNotification) -> bool:
        """
        스트림 종료 알림 처리.

        Returns:
            등록된 스트림을 중지했으면 True, 등록되지 않은 스트림이면 False

        Raises:
            UnresolvedStreamIdentity: 알림에서 스트림 경로를 결정할 수 없을 때
        """
        session = self._resolve(notification, "stream-stopped")
        key = session.identity.key

        manager = self._registry.get(key)
        if manager is None:
            logger.info("등록되지 않은 스트림의 종료 알림 무시", stream_key=key)
            return False

        logger.info(
            f"스트림 종료 알림: {session.identity.path}",
            stream_key=key,
            session_id=notification.session_id,
        )
        manager.stop_all()
        return True

    def handle_signal(self, sig: int) -> None:
        """
        종료 시그널 처리.

        최초 한 번만 모든 스트림을 정리하고, shutdown_grace초 후 종료 콜백을 호출합니다.
        서브프로세스가 아직 종료되지 않았더라도 기다리지 않습니다.
        """
        if self._shutdown_signal is not None:
            logger.info(f"이미 종료 중, 시그널 무시: {signal.Signals(sig).name}")
            return

        self._shutdown_signal = sig
        logger.info(f"시그널 수신: {signal.Signals(sig).name}, 전체 스트림 종료")
        self._registry.shutdown_all(sig)

        grace = self._settings.timings.shutdown_grace
        self._scheduler.call_later(grace, self._exit)
        logger.info(f"{grace:.1f}초 후 프로세스 종료")

    def install_signal_handlers(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """SIGINT/SIGTERM을 이벤트 루프에 연결합니다."""
        loop = loop or asyncio.get_running_loop()
        for sig in SHUTDOWN_SIGNALS:
            loop.add_signal_handler(sig, self.handle_signal, sig)
        logger.debug("시그널 핸들러 설치 완료")

    def _exit(self) -> None:
        if self._exit_callback is None:
            logger.warning("종료 콜백이 설정되지 않았습니다")
            return
        self._exit_callback()

    def _resolve(self, notification: PublishNotification, event: str) -> ResolvedSession:
        resolution = self._resolver.resolve(notification)
        if isinstance(resolution, ResolvedSession):
            return resolution

        error = resolution.to_error()
        logger.warning(
            f"{event} 알림 무시: {error.message}",
            code=error.code.value,
            notification=notification.to_dict(),
        )
        raise error

    def _create_manager(self, identity: StreamIdentity) -> RelayManager:
        return RelayManager(
            identity=identity,
            settings=self._settings,
            registry=self._registry,
            handle_factory=self._handle_factory,
            scheduler=self._scheduler,
            artifacts=self._artifacts,
        )
