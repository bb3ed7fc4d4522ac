"""
라이프사이클 모듈

인제스트 알림과 OS 시그널을 스트림 레지스트리 동작으로 연결합니다.
"""

from stream_relay.application.lifecycle.bridge import LifecycleEventBridge

__all__ = ["LifecycleEventBridge"]
