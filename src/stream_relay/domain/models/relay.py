"""
릴레이 모델

목적지, 로컬 세그멘테이션 타깃, 타이밍, 서브프로세스 상태를 정의합니다.
모든 설정 모델은 로드 이후 변경되지 않습니다 (frozen).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Union

from stream_relay.common.errors import RelayTargetError, SpawnError

# 로컬 세그멘테이션 타깃의 예약 이름
SEGMENTATION_TARGET_NAME = "hls"


class ProcessState(str, Enum):
    """
    서브프로세스 핸들 상태

    SPAWNING → RUNNING → (STALLED →) EXITED
    기동 실패 시 SPAWNING → FAILED
    """

    SPAWNING = "SPAWNING"   # 기동 요청됨
    RUNNING = "RUNNING"     # 실행 중
    STALLED = "STALLED"     # 출력 정지로 강제 종료 중
    EXITED = "EXITED"       # 종료됨
    FAILED = "FAILED"       # 기동 실패

    @property
    def is_alive(self) -> bool:
        return self in (ProcessState.SPAWNING, ProcessState.RUNNING, ProcessState.STALLED)

    @property
    def is_running(self) -> bool:
        """기동 중이거나 정상 실행 중 (강제 종료 중 제외)"""
        return self in (ProcessState.SPAWNING, ProcessState.RUNNING)


@dataclass(frozen=True)
class DestinationSpec:
    """
    송출 목적지 설정

    Attributes:
        name: 목적지 이름 (설정 내 고유)
        url: 푸시 대상 URL (rtmp://, rtmps://)
        enabled: 활성화 여부
        watchdog: 출력 정지 워치독 사용 여부
        auto_reconnect: 종료 시 자동 재연결 여부
    """

    name: str
    url: str
    enabled: bool = True
    watchdog: bool = True
    auto_reconnect: bool = False

    is_segmentation = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "url": mask_url(self.url),
            "enabled": self.enabled,
            "watchdog": self.watchdog,
            "auto_reconnect": self.auto_reconnect,
        }


@dataclass(frozen=True)
class SegmentationSpec:
    """
    로컬 HLS 세그멘테이션 설정

    Attributes:
        enabled: 활성화 여부
        media_root: 스트림별 세그먼트 디렉토리의 상위 경로
        segment_duration: 세그먼트 길이 (초)
        playlist_size: 플레이리스트에 유지할 세그먼트 수
        cleanup_delay: 세그멘테이션 중지 후 디렉토리 삭제까지 유예 시간 (초)
        watchdog: 출력 정지 워치독 사용 여부
        auto_reconnect: 종료 시 자동 재연결 여부
        name: 타깃 이름 (예약)
    """

    enabled: bool = False
    media_root: Path = Path("media")
    segment_duration: int = 2
    playlist_size: int = 6
    cleanup_delay: float = 30.0
    watchdog: bool = True
    auto_reconnect: bool = False
    name: str = SEGMENTATION_TARGET_NAME

    is_segmentation = True

    def output_dir(self, stream_key: str) -> Path:
        """스트림 키에 해당하는 세그먼트 디렉토리"""
        return self.media_root / stream_key

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "enabled": self.enabled,
            "media_root": str(self.media_root),
            "segment_duration": self.segment_duration,
            "playlist_size": self.playlist_size,
            "cleanup_delay": self.cleanup_delay,
            "watchdog": self.watchdog,
            "auto_reconnect": self.auto_reconnect,
        }


RelayTarget = Union[DestinationSpec, SegmentationSpec]


@dataclass(frozen=True)
class RelayTimings:
    """
    슈퍼바이저 타이밍 (초 단위)

    Attributes:
        stagger: 목적지 간 시작 간격
        reconnect_delay: 자동 재연결 대기 시간
        watchdog_interval: 워치독 점검 주기
        stall_threshold: 출력 정지로 판단하는 무출력 시간
        shutdown_grace: 종료 시그널 후 프로세스 종료까지 유예 시간
    """

    stagger: float = 0.5
    reconnect_delay: float = 5.0
    watchdog_interval: float = 10.0
    stall_threshold: float = 30.0
    shutdown_grace: float = 2.0


@dataclass(frozen=True)
class FFmpegSettings:
    """릴레이 실행 파일 설정"""

    binary: str = "/usr/bin/ffmpeg"
    loglevel: str = "info"
    bufsize: str = "3000k"


@dataclass(frozen=True)
class IngestSettings:
    """인제스트 서버 입력 위치 설정"""

    rtmp_base_url: str = "rtmp://127.0.0.1:1935"
    default_app: str = "live"


@dataclass(frozen=True)
class RelaySettings:
    """
    런타임 릴레이 설정 묶음

    설정 로더가 생성하며 매니저와 팩토리가 공유합니다.
    """

    destinations: tuple[DestinationSpec, ...] = ()
    segmentation: SegmentationSpec = field(default_factory=SegmentationSpec)
    timings: RelayTimings = field(default_factory=RelayTimings)
    ffmpeg: FFmpegSettings = field(default_factory=FFmpegSettings)
    ingest: IngestSettings = field(default_factory=IngestSettings)
    log_dir: Path = Path("logs")

    @property
    def enabled_destinations(self) -> list[DestinationSpec]:
        """설정 순서를 유지한 활성 목적지 목록"""
        return [d for d in self.destinations if d.enabled]


@dataclass(frozen=True)
class ExitReport:
    """
    서브프로세스 종료 보고

    핸들이 소유 매니저에게 정확히 한 번 전달합니다.

    Attributes:
        exit_code: 종료 코드 (기동 실패 시 None)
        was_forced: 워치독에 의한 강제 종료 여부
        condition: SubprocessExit, StallDetected, SpawnError 중 하나
    """

    exit_code: int | None
    was_forced: bool
    condition: RelayTargetError

    @property
    def spawn_failed(self) -> bool:
        return isinstance(self.condition, SpawnError)


def mask_url(url: str) -> str:
    """
    URL에 포함된 스트림 키를 마스킹합니다.

    rtmp://live.twitch.tv/app/live_1234_abcd -> rtmp://live.twitch.tv/app/****
    """
    masked = re.sub(r"(://[^:/]+:)[^@]+(@)", r"\1****\2", url)
    head, sep, _tail = masked.rpartition("/")
    if sep and "://" in head:
        return f"{head}/****"
    return masked
