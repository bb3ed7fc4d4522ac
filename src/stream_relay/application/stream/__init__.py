"""
스트림 관리 모듈

스트림별 릴레이 프로세스 생명주기, 스트림 레지스트리, 세그멘테이션 산출물을 담당합니다.
"""

from stream_relay.application.stream.artifacts import SegmentArtifactStore
from stream_relay.application.stream.manager import RelayManager
from stream_relay.application.stream.registry import StreamRegistry

__all__ = ["RelayManager", "SegmentArtifactStore", "StreamRegistry"]
