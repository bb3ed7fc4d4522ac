"""
헬스 체크 및 시스템 상태 엔드포인트
"""

from __future__ import annotations

import os
import time
from typing import Any

import psutil
from fastapi import APIRouter, Depends

from stream_relay.application.lifecycle.bridge import LifecycleEventBridge
from stream_relay.application.stream.registry import StreamRegistry
from stream_relay.common.logging import get_logger
from stream_relay.domain.models.relay import ProcessState
from stream_relay.interface.api.dependencies import get_bridge, get_registry

logger = get_logger(__name__)

router = APIRouter()


def _summarize_streams(registry: StreamRegistry) -> dict[str, Any]:
    """스트림 상태 요약 정보를 반환합니다."""
    summary: dict[str, Any] = {}
    for snapshot in registry.snapshot():
        targets = snapshot["targets"]
        summary[snapshot["stream_key"]] = {
            "targets": len(targets),
            "running": sum(1 for t in targets if t["state"] == ProcessState.RUNNING.value),
            "pending": len(snapshot["pending"]),
            "stopping": snapshot["stopping"],
        }
    return summary


@router.get("/health/live")
async def health_live() -> dict[str, str]:
    """라이브니스 체크 (단순 200)."""
    return {"status": "live"}


@router.get("/health/ready")
async def health_ready(
    registry: StreamRegistry = Depends(get_registry),
    bridge: LifecycleEventBridge = Depends(get_bridge),
) -> dict[str, Any]:
    """레디니스 체크 (종료 중이면 shutting_down)."""
    return {
        "status": "shutting_down" if bridge.is_shutting_down else "ready",
        "streams": len(registry),
    }


@router.get("/health")
async def health(
    registry: StreamRegistry = Depends(get_registry),
) -> dict[str, Any]:
    """통합 헬스 체크 (간단한 상태 + 스트림 요약)."""
    return {
        "status": "healthy",
        "ts": time.time(),
        "streams": _summarize_streams(registry),
    }


@router.get("/api/stats/system")
async def get_system_stats() -> dict[str, Any]:
    """시스템 리소스 사용률과 FFmpeg 자식 프로세스 수를 반환합니다."""
    try:
        # 현재 프로세스 정보
        process = psutil.Process(os.getpid())
        process_cpu = process.cpu_percent(interval=0.1)
        process_memory_mb = process.memory_info().rss / (1024 * 1024)
        children = process.children(recursive=False)

        # 전체 시스템 정보
        system_cpu = psutil.cpu_percent(interval=0.1)
        system_memory = psutil.virtual_memory()

        return {
            "success": True,
            "data": {
                "system": {
                    "cpu_percent": round(system_cpu, 1),
                    "memory_total_mb": round(system_memory.total / (1024 * 1024), 0),
                    "memory_used_mb": round(system_memory.used / (1024 * 1024), 0),
                    "memory_percent": round(system_memory.percent, 1),
                },
                "process": {
                    "cpu_percent": round(process_cpu, 1),
                    "memory_mb": round(process_memory_mb, 0),
                    "child_processes": len(children),
                },
            },
        }
    except psutil.Error as e:
        logger.warning(f"시스템 정보 조회 실패: {e}")
        return {
            "success": False,
            "error": str(e),
            "data": {
                "system": {
                    "cpu_percent": 0,
                    "memory_total_mb": 0,
                    "memory_used_mb": 0,
                    "memory_percent": 0,
                },
                "process": {
                    "cpu_percent": 0,
                    "memory_mb": 0,
                    "child_processes": 0,
                },
            },
        }
