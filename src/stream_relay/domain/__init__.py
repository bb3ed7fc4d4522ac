"""
Domain Layer

순수 비즈니스 규칙과 엔티티를 정의합니다.
외부 라이브러리에 의존하지 않으며, 표준 라이브러리만 사용합니다.

구성 요소:
- models: 데이터 모델 (StreamIdentity, RelayTarget, PublishNotification)
"""

from stream_relay.domain.models import (
    DestinationSpec,
    ExitReport,
    ProcessState,
    PublishNotification,
    RelaySettings,
    RelayTimings,
    SegmentationSpec,
    SessionResolver,
    StreamIdentity,
)

__all__ = [
    "DestinationSpec",
    "ExitReport",
    "ProcessState",
    "PublishNotification",
    "RelaySettings",
    "RelayTimings",
    "SegmentationSpec",
    "SessionResolver",
    "StreamIdentity",
]
