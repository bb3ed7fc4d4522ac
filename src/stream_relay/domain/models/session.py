"""
퍼블리시 세션 해석

인제스트 서버 알림에서 스트림 식별자를 결정합니다.
알림마다 제공하는 필드가 다르므로, 능력(capability)별 해석기를 순서대로 시도하고
어느 것도 성공하지 못하면 명시적인 Unresolved 결과를 반환합니다.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Union

from stream_relay.common.errors import UnresolvedStreamIdentity
from stream_relay.domain.models.stream import StreamIdentity, normalize_stream_path


@dataclass(frozen=True)
class PublishNotification:
    """
    인제스트 라이프사이클 알림

    Attributes:
        session_id: 인제스트 서버 세션 ID (로깅용)
        stream_path: 알림에 직접 전달된 스트림 경로
        publish_stream_path: 세션에 기록된 퍼블리시 경로
        app: 애플리케이션 네임스페이스 (예: "live")
        name: 원시 스트림 이름 (예: "abc123")
        extra: 그 밖의 알림 필드 (로깅용)
    """

    session_id: str | None = None
    stream_path: str | None = None
    publish_stream_path: str | None = None
    app: str | None = None
    name: str | None = None
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "stream_path": self.stream_path,
            "publish_stream_path": self.publish_stream_path,
            "app": self.app,
            "name": self.name,
        }


@dataclass(frozen=True)
class ResolvedSession:
    """해석 성공 결과. source는 경로를 제공한 능력 이름입니다."""

    identity: StreamIdentity
    source: str


@dataclass(frozen=True)
class UnresolvedSession:
    """해석 실패 결과"""

    reason: str
    notification: PublishNotification

    def to_error(self) -> UnresolvedStreamIdentity:
        return UnresolvedStreamIdentity(
            self.reason,
            details=self.notification.to_dict(),
        )


SessionResolution = Union[ResolvedSession, UnresolvedSession]

# 알림에서 원시 경로를 뽑아내는 능력. 해당 능력이 없으면 None
PathCapability = Callable[[PublishNotification], "str | None"]


def explicit_stream_path(notification: PublishNotification) -> str | None:
    return notification.stream_path


def session_publish_path(notification: PublishNotification) -> str | None:
    return notification.publish_stream_path


def make_named_stream_path(default_app: str = "live") -> PathCapability:
    """원시 스트림 이름 + 네임스페이스 능력을 생성합니다."""

    def named_stream_path(notification: PublishNotification) -> str | None:
        if not notification.name or not notification.name.strip("/"):
            return None
        app = (notification.app or default_app).strip("/") or default_app
        return f"/{app}/{notification.name.strip('/')}"

    return named_stream_path


class SessionResolver:
    """
    세션 해석기

    능력을 등록 순서대로 시도합니다. 기본 순서:
    1. 알림에 직접 전달된 경로
    2. 세션의 퍼블리시 경로
    3. 원시 스트림 이름 + 애플리케이션 네임스페이스

    Example:
        >>> resolver = SessionResolver()
        >>> result = resolver.resolve(PublishNotification(app="live", name="abc123"))
        >>> result.identity.key
        'live__abc123'
    """

    def __init__(
        self,
        default_app: str = "live",
        capabilities: list[tuple[str, PathCapability]] | None = None,
    ) -> None:
        self._capabilities = capabilities or [
            ("stream_path", explicit_stream_path),
            ("publish_stream_path", session_publish_path),
            ("app_name", make_named_stream_path(default_app)),
        ]

    def resolve(self, notification: PublishNotification) -> SessionResolution:
        """알림을 식별자로 해석합니다. 추측하지 않습니다."""
        for source, capability in self._capabilities:
            raw_path = capability(notification)
            if normalize_stream_path(raw_path) is None:
                continue
            return ResolvedSession(
                identity=StreamIdentity.from_path(raw_path),
                source=source,
            )

        return UnresolvedSession(
            reason="알림에서 스트림 경로를 결정할 수 없습니다",
            notification=notification,
        )
