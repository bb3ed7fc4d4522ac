"""
스트림 식별자 모델

퍼블리시 경로를 정규화된 스트림 식별자로 변환합니다.
이 모듈은 외부 라이브러리에 의존하지 않습니다.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from stream_relay.common.errors import UnresolvedStreamIdentity

# 스트림 키에서 경로 구분자를 대체하는 토큰
KEY_SEPARATOR = "__"

_SEPARATOR_RUN = re.compile(r"/+")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")

# 키가 디렉토리 이름으로 쓰이므로 상대 경로 세그먼트는 허용하지 않습니다
_RESERVED_SEGMENTS = frozenset({".", ".."})


def normalize_stream_path(raw_path: str | None) -> str | None:
    """
    퍼블리시 경로를 정규화합니다.

    앞뒤 슬래시를 제거하고 연속된 슬래시를 하나로 합칩니다.
    결과가 비어 있거나, "." 또는 ".." 세그먼트나 제어 문자를 포함하면
    None을 반환합니다.

    Example:
        >>> normalize_stream_path("/live/abc123/")
        'live/abc123'
    """
    if not raw_path:
        return None
    normalized = _SEPARATOR_RUN.sub("/", raw_path.strip()).strip("/")
    if not normalized or _CONTROL_CHARS.search(normalized):
        return None
    if any(segment in _RESERVED_SEGMENTS for segment in normalized.split("/")):
        return None
    return normalized


@dataclass(frozen=True)
class StreamIdentity:
    """
    스트림 식별자

    하나의 인바운드 라이브 세션을 가리키는 불투명 키입니다.
    앞뒤 슬래시만 다른 두 경로는 같은 식별자가 됩니다.

    Attributes:
        path: 정규화된 퍼블리시 경로 (예: "live/abc123")
        key: 단일 토큰 키 (예: "live__abc123")
    """

    path: str
    key: str

    @classmethod
    def from_path(cls, raw_path: str | None) -> StreamIdentity:
        """
        퍼블리시 경로에서 식별자를 생성합니다.

        Raises:
            UnresolvedStreamIdentity: 경로가 비어 있을 때
        """
        normalized = normalize_stream_path(raw_path)
        if normalized is None:
            raise UnresolvedStreamIdentity(
                f"유효하지 않은 스트림 경로: {raw_path!r}",
                details={"raw_path": raw_path},
            )
        return cls(path=normalized, key=normalized.replace("/", KEY_SEPARATOR))

    @property
    def has_namespace(self) -> bool:
        """경로에 애플리케이션 네임스페이스가 포함되어 있는지 여부"""
        return "/" in self.path

    def input_url(self, ingest_base_url: str, default_app: str = "live") -> str:
        """
        릴레이 서브프로세스가 읽을 입력 URL을 반환합니다.

        네임스페이스가 없는 경로는 default_app 아래에 있는 것으로 간주합니다.
        """
        base = ingest_base_url.rstrip("/")
        if self.has_namespace:
            return f"{base}/{self.path}"
        return f"{base}/{default_app}/{self.path}"

    def __str__(self) -> str:
        return self.key
