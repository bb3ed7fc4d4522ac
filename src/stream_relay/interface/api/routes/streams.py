"""
스트림 상태 조회 API
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from stream_relay.application.stream.registry import StreamRegistry
from stream_relay.common.errors import ErrorCode, StreamError
from stream_relay.interface.api.dependencies import get_registry

router = APIRouter(prefix="/api/streams", tags=["streams"])


# === DTO 정의 ===


class StreamSummary(BaseModel):
    stream_key: str
    path: str
    stopping: bool
    targets: int
    pending: list[str]


class StreamListResponse(BaseModel):
    success: bool = True
    data: list[StreamSummary]


class StreamDetailResponse(BaseModel):
    success: bool = True
    data: dict[str, Any]


def _to_summary(snapshot: dict[str, Any]) -> StreamSummary:
    return StreamSummary(
        stream_key=snapshot["stream_key"],
        path=snapshot["path"],
        stopping=snapshot["stopping"],
        targets=len(snapshot["targets"]),
        pending=snapshot["pending"],
    )


# === 라우트 ===


@router.get("", response_model=StreamListResponse)
async def list_streams(registry: StreamRegistry = Depends(get_registry)) -> StreamListResponse:
    """등록된 모든 스트림을 조회합니다."""
    return StreamListResponse(data=[_to_summary(s) for s in registry.snapshot()])


@router.get("/{stream_key}", response_model=StreamDetailResponse)
async def get_stream(
    stream_key: str,
    registry: StreamRegistry = Depends(get_registry),
) -> StreamDetailResponse:
    """스트림의 타깃별 프로세스 상태를 조회합니다."""
    manager = registry.get(stream_key)
    if manager is None:
        raise StreamError(
            ErrorCode.STREAM_NOT_FOUND,
            f"스트림을 찾을 수 없습니다: {stream_key}",
            stream_key=stream_key,
        )
    return StreamDetailResponse(data=manager.describe())
