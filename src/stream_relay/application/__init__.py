"""
Application Layer

릴레이 슈퍼바이저의 유스케이스를 구현합니다.
Domain Layer만 참조하며, Infrastructure와 Interface Layer에 의존하지 않습니다.

구성 요소:
- scheduler: 단일 이벤트 루프 위의 지연 작업 스케줄러
- stream: 릴레이 관리자, 스트림 레지스트리, 세그멘테이션 산출물
- lifecycle: 인제스트 알림/시그널 브리지
"""

from stream_relay.application.scheduler import AsyncioScheduler, Scheduler
from stream_relay.application.stream.artifacts import SegmentArtifactStore
from stream_relay.application.stream.manager import RelayManager
from stream_relay.application.stream.registry import StreamRegistry
from stream_relay.application.lifecycle.bridge import LifecycleEventBridge

__all__ = [
    "AsyncioScheduler",
    "Scheduler",
    "SegmentArtifactStore",
    "RelayManager",
    "StreamRegistry",
    "LifecycleEventBridge",
]
