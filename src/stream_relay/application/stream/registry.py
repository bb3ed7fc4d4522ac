"""
스트림 레지스트리

스트림 키에서 릴레이 관리자로의 매핑입니다. 레지스트리에 등록되어 있다는 것이
"이 스트림이 활성 상태"라는 유일한 기준이며, 지연 시작/재연결 타이머는 실행
직전에 이 기준을 다시 확인합니다.
"""

from __future__ import annotations

import signal
from typing import TYPE_CHECKING, Any, Callable, Iterator

from stream_relay.common.logging import get_logger
from stream_relay.domain.models.stream import StreamIdentity

if TYPE_CHECKING:
    from stream_relay.application.stream.artifacts import SegmentArtifactStore
    from stream_relay.application.stream.manager import RelayManager

logger = get_logger(__name__)


class StreamRegistry:
    """
    스트림 레지스트리.

    get_or_create와 remove만 매핑을 변경합니다. 다른 구성 요소는
    레지스트리에서 얻은 관리자 참조를 통해서만 동작합니다.
    """

    def __init__(self, artifacts: "SegmentArtifactStore | None" = None) -> None:
        self._managers: dict[str, "RelayManager"] = {}
        self._artifacts = artifacts

    def get_or_create(
        self,
        identity: StreamIdentity,
        factory: Callable[[StreamIdentity], "RelayManager"],
    ) -> "RelayManager":
        """
        등록된 관리자를 반환하거나 새로 만들어 등록합니다.

        Args:
            identity: 스트림 식별자
            factory: 관리자가 없을 때 호출할 생성 함수

        Returns:
            해당 스트림의 관리자
        """
        manager = self._managers.get(identity.key)
        if manager is not None:
            return manager

        manager = factory(identity)
        self._managers[identity.key] = manager
        logger.info(f"스트림 등록: {identity.key}", stream_key=identity.key)
        return manager

    def remove(self, stream_key: str, manager: "RelayManager | None" = None) -> bool:
        """
        스트림을 등록 해제합니다.

        manager를 지정하면 매핑이 여전히 그 관리자를 가리킬 때만 제거합니다.

        Returns:
            제거했으면 True
        """
        current = self._managers.get(stream_key)
        if current is None:
            return False
        if manager is not None and current is not manager:
            return False
        del self._managers[stream_key]
        logger.info(f"스트림 등록 해제: {stream_key}", stream_key=stream_key)
        return True

    def get(self, stream_key: str) -> "RelayManager | None":
        return self._managers.get(stream_key)

    def is_registered(self, manager: "RelayManager") -> bool:
        return self._managers.get(manager.stream_key) is manager

    def managers(self) -> list["RelayManager"]:
        return list(self._managers.values())

    def __contains__(self, stream_key: object) -> bool:
        return stream_key in self._managers

    def __len__(self) -> int:
        return len(self._managers)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._managers))

    def shutdown_all(self, sig: int = signal.SIGTERM) -> int:
        """
        모든 관리자를 종료하고 세그멘테이션 산출물을 즉시 삭제합니다.

        Returns:
            종료한 관리자 수
        """
        managers = self.managers()
        for manager in managers:
            manager.shutdown(sig)
        purged = self._artifacts.purge_all() if self._artifacts is not None else 0
        logger.info(
            f"전체 스트림 종료: {len(managers)}개",
            signal=int(sig),
            purged_artifacts=purged,
        )
        return len(managers)

    def snapshot(self) -> list[dict[str, Any]]:
        """등록된 모든 스트림의 상태 목록."""
        return [manager.describe() for manager in self._managers.values()]
