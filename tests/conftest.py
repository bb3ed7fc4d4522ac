"""Pytest configuration and fixtures."""

import sys
from dataclasses import dataclass, replace
from pathlib import Path

# Add the project root and src to Python path
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))
sys.path.insert(0, str(ROOT / "src"))

import pytest

from stream_relay.application.lifecycle.bridge import LifecycleEventBridge
from stream_relay.application.stream.artifacts import SegmentArtifactStore
from stream_relay.application.stream.manager import RelayManager
from stream_relay.application.stream.registry import StreamRegistry
from stream_relay.domain.models.relay import RelaySettings
from stream_relay.domain.models.session import PublishNotification, SessionResolver
from stream_relay.infrastructure.relay.ffmpeg_process import RelayProcessFactory
from tests.doubles import FakeLauncher, ManualScheduler
from tests.factories import make_settings


@dataclass
class Supervisor:
    """Fully wired supervisor driven by a manual clock and fake subprocesses."""

    scheduler: ManualScheduler
    launcher: FakeLauncher
    settings: RelaySettings
    artifacts: SegmentArtifactStore
    registry: StreamRegistry
    factory: RelayProcessFactory
    bridge: LifecycleEventBridge

    def start(self, path: str) -> RelayManager:
        return self.bridge.on_stream_started(PublishNotification(stream_path=path))

    def stop(self, path: str) -> bool:
        return self.bridge.on_stream_stopped(PublishNotification(stream_path=path))


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture
def build_supervisor(tmp_path, scheduler, launcher):
    def _build(settings: RelaySettings | None = None, **overrides) -> Supervisor:
        relay_settings = settings or make_settings(tmp_path)
        if overrides:
            relay_settings = replace(relay_settings, **overrides)
        artifacts = SegmentArtifactStore(scheduler)
        registry = StreamRegistry(artifacts)
        factory = RelayProcessFactory(relay_settings, scheduler, launcher=launcher)
        bridge = LifecycleEventBridge(
            registry=registry,
            resolver=SessionResolver(default_app=relay_settings.ingest.default_app),
            settings=relay_settings,
            handle_factory=factory,
            scheduler=scheduler,
            artifacts=artifacts,
        )
        return Supervisor(
            scheduler=scheduler,
            launcher=launcher,
            settings=relay_settings,
            artifacts=artifacts,
            registry=registry,
            factory=factory,
            bridge=bridge,
        )

    return _build
