"""
FastAPI dependency wiring.

Interface 계층에서 사용할 의존성을 관리합니다.
Composition Root(main.py)에서 set_app_context로 주입합니다.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from fastapi import Depends, FastAPI, Request

from stream_relay.application.lifecycle.bridge import LifecycleEventBridge
from stream_relay.application.stream.registry import StreamRegistry
from stream_relay.domain.models.relay import RelaySettings


@dataclass
class AppContext:
    registry: StreamRegistry
    bridge: LifecycleEventBridge
    settings: RelaySettings
    started_at: float = field(default_factory=time.time)


def set_app_context(app: FastAPI, context: AppContext) -> None:
    """FastAPI app.state에 AppContext를 저장합니다"""
    app.state.app_context = context


def get_app_context(request: Request) -> AppContext:
    context: AppContext | None = getattr(request.app.state, "app_context", None)
    if context is None:
        raise RuntimeError("AppContext가 설정되지 않았습니다")
    return context


def get_registry(context: AppContext = Depends(get_app_context)) -> StreamRegistry:
    return context.registry


def get_bridge(context: AppContext = Depends(get_app_context)) -> LifecycleEventBridge:
    return context.bridge


def get_settings(context: AppContext = Depends(get_app_context)) -> RelaySettings:
    return context.settings
