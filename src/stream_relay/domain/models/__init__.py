"""
데이터 모델 모듈

스트림 식별자, 릴레이 타깃, 세션 해석 등 핵심 데이터 구조를 정의합니다.
"""

from stream_relay.domain.models.stream import StreamIdentity, normalize_stream_path
from stream_relay.domain.models.relay import (
    DestinationSpec,
    ExitReport,
    FFmpegSettings,
    IngestSettings,
    ProcessState,
    RelaySettings,
    RelayTarget,
    RelayTimings,
    SegmentationSpec,
    SEGMENTATION_TARGET_NAME,
)
from stream_relay.domain.models.session import (
    PublishNotification,
    ResolvedSession,
    SessionResolver,
    UnresolvedSession,
)

__all__ = [
    # 스트림
    "StreamIdentity",
    "normalize_stream_path",
    # 릴레이
    "DestinationSpec",
    "ExitReport",
    "FFmpegSettings",
    "IngestSettings",
    "ProcessState",
    "RelaySettings",
    "RelayTarget",
    "RelayTimings",
    "SegmentationSpec",
    "SEGMENTATION_TARGET_NAME",
    # 세션
    "PublishNotification",
    "ResolvedSession",
    "SessionResolver",
    "UnresolvedSession",
]
