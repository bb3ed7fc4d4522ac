"""
세그멘테이션 산출물 관리자

스트림별 HLS 출력 디렉토리의 생성과 지연 삭제를 관리합니다.

상태 전이 (스트림 키별):
    없음 --prepare--> 활성 --schedule_removal--> 삭제 대기 --(지연 경과)--> 없음
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import TYPE_CHECKING

from stream_relay.common.logging import get_logger

if TYPE_CHECKING:
    from stream_relay.application.scheduler import Scheduler, TimerHandle

logger = get_logger(__name__)


class SegmentArtifactStore:
    """스트림별 세그멘테이션 디렉토리 생명주기 관리"""

    def __init__(self, scheduler: "Scheduler") -> None:
        self._scheduler = scheduler
        self._directories: dict[str, Path] = {}
        self._pending: dict[str, "TimerHandle"] = {}

    def prepare(self, stream_key: str, directory: Path, root: Path | None = None) -> Path:
        """
        출력 디렉토리를 만들고 활성 상태로 등록합니다.

        같은 키에 대기 중인 삭제가 있으면 취소합니다 (스트림 재시작).

        Args:
            stream_key: 스트림 키
            directory: 세그먼트 출력 디렉토리
            root: 지정하면 directory가 반드시 이 경로의 하위여야 함

        Raises:
            ValueError: directory가 root 하위가 아닐 때
            OSError: 디렉토리를 만들 수 없을 때
        """
        if root is not None and not _is_strictly_inside(directory, root):
            raise ValueError(f"세그멘테이션 디렉토리가 미디어 루트 밖에 있습니다: {directory}")
        self._cancel_pending(stream_key)
        directory.mkdir(parents=True, exist_ok=True)
        self._directories[stream_key] = directory
        logger.debug(f"세그멘테이션 디렉토리 준비: {directory}", stream_key=stream_key)
        return directory

    def schedule_removal(self, stream_key: str, delay: float) -> bool:
        """
        delay초 후 디렉토리 삭제를 예약합니다.

        기존 예약이 있으면 교체합니다.

        Returns:
            등록된 디렉토리가 있어 예약했으면 True
        """
        if stream_key not in self._directories:
            return False
        self._cancel_pending(stream_key)
        self._pending[stream_key] = self._scheduler.call_later(
            delay, self._on_removal_due, stream_key
        )
        logger.info(
            f"세그멘테이션 산출물 삭제 예약 ({delay:.0f}초 후)",
            stream_key=stream_key,
        )
        return True

    def remove_now(self, stream_key: str) -> bool:
        """대기 여부와 관계없이 즉시 삭제합니다."""
        self._cancel_pending(stream_key)
        directory = self._directories.pop(stream_key, None)
        if directory is None:
            return False
        self._delete(stream_key, directory)
        return True

    def purge_all(self) -> int:
        """모든 예약을 취소하고 등록된 디렉토리를 즉시 삭제합니다."""
        keys = list(self._directories)
        for key in keys:
            self.remove_now(key)
        return len(keys)

    def is_pending(self, stream_key: str) -> bool:
        return stream_key in self._pending

    def directory_for(self, stream_key: str) -> Path | None:
        return self._directories.get(stream_key)

    def _on_removal_due(self, stream_key: str) -> None:
        self._pending.pop(stream_key, None)
        directory = self._directories.pop(stream_key, None)
        if directory is not None:
            self._delete(stream_key, directory)

    def _cancel_pending(self, stream_key: str) -> None:
        handle = self._pending.pop(stream_key, None)
        if handle is not None:
            handle.cancel()

    def _delete(self, stream_key: str, directory: Path) -> None:
        try:
            shutil.rmtree(directory)
        except FileNotFoundError:
            logger.debug(f"삭제할 디렉토리 없음: {directory}", stream_key=stream_key)
            return
        except OSError as e:
            logger.error(
                f"세그멘테이션 산출물 삭제 실패: {e}",
                stream_key=stream_key,
                path=str(directory),
            )
            return
        logger.info(f"세그멘테이션 산출물 삭제: {directory}", stream_key=stream_key)


def _is_strictly_inside(directory: Path, root: Path) -> bool:
    """directory가 root 자신이 아닌 하위 경로인지 확인합니다."""
    resolved_root = root.resolve()
    return resolved_root in directory.resolve().parents
