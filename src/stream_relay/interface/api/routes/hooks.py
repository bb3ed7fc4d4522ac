"""
인제스트 서버 알림(웹훅) API

nginx-rtmp의 on_publish / on_publish_done 방식의 HTTP 콜백을 받습니다.
본문은 JSON 또는 폼(application/x-www-form-urlencoded, multipart/form-data) 모두 허용합니다.
"""

from __future__ import annotations

from typing import Any
import orjson
from fastapi import APIRouter, Depends, Request
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from stream_relay.application.lifecycle.bridge import LifecycleEventBridge
from stream_relay.common.errors import UnresolvedStreamIdentity
from stream_relay.common.logging import get_logger
from stream_relay.domain.models.session import PublishNotification
from stream_relay.interface.api.dependencies import get_bridge

logger = get_logger(__name__)

router = APIRouter(prefix="/hooks", tags=["hooks"])


# === DTO 정의 ===


class PublishHookPayload(BaseModel):
    """인제스트 서버 알림 본문. 서버마다 다른 필드 이름을 모두 받아들입니다."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    session_id: str | None = Field(
        None, validation_alias=AliasChoices("session_id", "id", "clientid", "client_id")
    )
    stream_path: str | None = Field(
        None, validation_alias=AliasChoices("stream_path", "streamPath", "path")
    )
    publish_stream_path: str | None = Field(
        None, validation_alias=AliasChoices("publish_stream_path", "publishStreamPath")
    )
    app: str | None = Field(None, validation_alias=AliasChoices("app", "streamApp"))
    name: str | None = Field(None, validation_alias=AliasChoices("name", "streamName"))

    @field_validator("session_id", "stream_path", "publish_stream_path", "app", "name", mode="before")
    @classmethod
    def coerce_str(cls, value: Any) -> str | None:
        if value is None:
            return None
        return str(value)

    def to_notification(self) -> PublishNotification:
        return PublishNotification(
            session_id=self.session_id,
            stream_path=self.stream_path,
            publish_stream_path=self.publish_stream_path,
            app=self.app,
            name=self.name,
            extra=dict(self.model_extra or {}),
        )


# === 유틸 ===


async def _read_payload(request: Request) -> PublishHookPayload:
    """쿼리 파라미터와 본문을 합쳐 알림 본문으로 변환합니다 (본문 우선)."""
    data: dict[str, Any] = dict(request.query_params)

    body = await request.body()
    if body:
        content_type = request.headers.get("content-type", "")
        if "json" in content_type:
            try:
                parsed = orjson.loads(body)
            except orjson.JSONDecodeError as e:
                raise UnresolvedStreamIdentity(
                    "알림 본문 JSON을 해석할 수 없습니다",
                    details={"error": str(e)},
                ) from e
            if not isinstance(parsed, dict):
                raise UnresolvedStreamIdentity("알림 본문은 JSON 객체여야 합니다")
            data.update(parsed)
        else:
            form = await request.form()
            data.update({key: value for key, value in form.items() if isinstance(value, str)})

    return PublishHookPayload.model_validate(data)


# === 라우트 ===


@router.post("/on_publish")
async def on_publish(
    request: Request,
    bridge: LifecycleEventBridge = Depends(get_bridge),
) -> dict[str, Any]:
    """스트림 시작 알림."""
    payload = await _read_payload(request)
    manager = bridge.on_stream_started(payload.to_notification())

    if manager is None:
        return {"success": True, "data": {"started": False, "reason": "shutting_down"}}

    return {
        "success": True,
        "data": {
            "started": True,
            "stream_key": manager.stream_key,
            "input_url": manager.input_url,
        },
    }


@router.post("/on_publish_done")
async def on_publish_done(
    request: Request,
    bridge: LifecycleEventBridge = Depends(get_bridge),
) -> dict[str, Any]:
    """스트림 종료 알림. 등록되지 않은 스트림이어도 200을 반환합니다."""
    payload = await _read_payload(request)
    notification = payload.to_notification()
    stopped = bridge.on_stream_stopped(notification)
    return {"success": True, "data": {"stopped": stopped}}
