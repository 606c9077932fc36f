"""Shared test fixtures for sdkforge."""

from __future__ import annotations

import hashlib
from collections.abc import Callable
from pathlib import Path

import pytest

from sdkforge.config import GeneratorSettings
from sdkforge.core.prerequisite_graph import PrerequisiteGraph
from sdkforge.core.stage_machine import StageMachine
from sdkforge.models.artifacts import ArtifactDescriptor, ArtifactRole
from sdkforge.models.config import GeneratorConfig
from sdkforge.models.stages import DEFAULT_STAGE_DEFINITIONS

from tests.helpers import ArtifactWorld, FakeArtifactServer, FakeRunner, make_world


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test artifacts."""
    return tmp_path


@pytest.fixture
def config(tmp_dir: Path) -> GeneratorConfig:
    """Default direct-download config (ubuntu 22.04, x86_64 -> aarch64)."""
    return GeneratorConfig.build(tmp_dir / "work")


@pytest.fixture
def settings() -> GeneratorSettings:
    return GeneratorSettings(
        _env_file=None,
        max_concurrent_downloads=2,
        max_concurrent_checksums=2,
        artifact_timeout_seconds=5.0,
    )


@pytest.fixture
def world(tmp_dir: Path, config: GeneratorConfig) -> ArtifactWorld:
    """Full artifact world for the default config, with an empty cache."""
    return make_world(tmp_dir, config.paths.artifacts_cache_path)


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def graph() -> PrerequisiteGraph:
    """Provide a PrerequisiteGraph with the default pipeline stages."""
    return PrerequisiteGraph(DEFAULT_STAGE_DEFINITIONS)


@pytest.fixture
def stage_machine(graph: PrerequisiteGraph) -> StageMachine:
    return StageMachine(graph)


@pytest.fixture
def make_artifact(tmp_dir: Path) -> Callable[..., ArtifactDescriptor]:
    """Factory fixture: write a cache file and return its descriptor."""

    def _factory(
        identifier: str = "artifact.tar.gz",
        content: bytes | None = b"payload",
        role: ArtifactRole = ArtifactRole.OS_PACKAGE,
        sha256: str | None = None,
    ) -> ArtifactDescriptor:
        local_path = tmp_dir / "cache" / identifier
        if content is not None:
            local_path.parent.mkdir(parents=True, exist_ok=True)
            local_path.write_bytes(content)
        return ArtifactDescriptor(
            identifier=identifier,
            role=role,
            remote_url=f"https://downloads.test/{identifier}",
            local_path=local_path,
            sha256=sha256 or hashlib.sha256(content or b"").hexdigest(),
        )

    return _factory


@pytest.fixture
def server() -> FakeArtifactServer:
    return FakeArtifactServer()
