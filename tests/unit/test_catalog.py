"""Tests for the artifact catalog: locators, lock file parsing, set construction."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from sdkforge.core.catalog import (
    ArtifactLock,
    LockEntry,
    build_artifact_set,
    lld_url,
    swift_toolchain_url,
)
from sdkforge.errors import ConfigurationError
from sdkforge.models.artifacts import ArtifactRole
from sdkforge.models.config import (
    CPU,
    DistributionName,
    GeneratorConfig,
    LinuxDistribution,
    Triple,
    VersionsConfiguration,
)

HOST_SHA = "a" * 64
TARGET_SHA = "b" * 64
LLD_SHA = "c" * 64


def _full_lock(distribution: LinuxDistribution) -> ArtifactLock:
    return ArtifactLock(
        artifacts={
            ArtifactRole.HOST_TOOLCHAIN: LockEntry(sha256=HOST_SHA),
            ArtifactRole.TARGET_TOOLCHAIN: LockEntry(sha256=TARGET_SHA),
            ArtifactRole.LINKER: LockEntry(sha256=LLD_SHA),
        },
        packages={
            name: LockEntry(sha256="d" * 64, url=f"https://mirror.test/{name}.deb")
            for name in distribution.required_packages
        },
    )


class TestLocators:
    def test_target_toolchain_url(self):
        versions = VersionsConfiguration()
        assert swift_toolchain_url(versions, versions.target_triple) == (
            "https://download.swift.org/swift-5.9.2-release/ubuntu2204-aarch64/"
            "swift-5.9.2-RELEASE/swift-5.9.2-RELEASE-ubuntu22.04-aarch64.tar.gz"
        )

    def test_x86_toolchain_url_has_no_suffix(self):
        versions = VersionsConfiguration(target_triple=Triple(cpu=CPU.X86_64))
        assert swift_toolchain_url(versions, versions.target_triple) == (
            "https://download.swift.org/swift-5.9.2-release/ubuntu2204/"
            "swift-5.9.2-RELEASE/swift-5.9.2-RELEASE-ubuntu22.04.tar.gz"
        )

    def test_focal_platform(self):
        versions = VersionsConfiguration(
            linux_distribution=LinuxDistribution(name=DistributionName.UBUNTU, version="20.04")
        )
        assert "/ubuntu2004-aarch64/" in swift_toolchain_url(versions, versions.target_triple)

    def test_lld_url_uses_host_cpu(self):
        versions = VersionsConfiguration(host_triple=Triple(cpu=CPU.ARM64))
        assert lld_url(versions) == (
            "https://github.com/llvm/llvm-project/releases/download/llvmorg-17.0.5/"
            "clang+llvm-17.0.5-aarch64-linux-gnu-ubuntu-22.04.tar.xz"
        )


class TestArtifactLock:
    def test_missing_file_is_empty_lock(self, tmp_dir: Path):
        lock = ArtifactLock.load(tmp_dir / "absent.json")
        assert lock.artifacts == {}
        assert lock.packages == {}

    def test_load_valid_file(self, tmp_dir: Path):
        path = tmp_dir / "sdkforge.lock.json"
        path.write_text(
            json.dumps(
                {
                    "artifacts": {"linker": {"sha256": LLD_SHA, "url": "https://mirror.test/lld.tar.xz"}},
                    "packages": {"zlib1g": {"sha256": "e" * 64, "url": "https://mirror.test/zlib1g.deb"}},
                }
            )
        )
        lock = ArtifactLock.load(path)
        assert lock.artifacts[ArtifactRole.LINKER].url == "https://mirror.test/lld.tar.xz"
        assert lock.packages["zlib1g"].sha256 == "e" * 64

    def test_malformed_file_raises(self, tmp_dir: Path):
        path = tmp_dir / "sdkforge.lock.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError, match="not valid"):
            ArtifactLock.load(path)

    def test_example_template_lists_every_default_entry(self, config: GeneratorConfig):
        template = Path(__file__).resolve().parents[2] / "sdkforge.lock.example.json"
        lock = ArtifactLock.load(template)

        assert set(lock.artifacts) == {
            ArtifactRole.HOST_TOOLCHAIN,
            ArtifactRole.TARGET_TOOLCHAIN,
            ArtifactRole.LINKER,
        }
        assert set(lock.packages) == set(config.versions.linux_distribution.required_packages)

    def test_unfilled_template_asks_for_checksums(self, config: GeneratorConfig):
        template = Path(__file__).resolve().parents[2] / "sdkforge.lock.example.json"
        with pytest.raises(ConfigurationError, match="no url|no expected checksum"):
            build_artifact_set(config, ArtifactLock.load(template))


class TestBuildArtifactSet:
    def test_direct_download_set(self, config: GeneratorConfig):
        lock = _full_lock(config.versions.linux_distribution)
        artifacts = build_artifact_set(config, lock)
        cache = config.paths.artifacts_cache_path

        assert artifacts.host_toolchain.identifier == "host_swift_5.9.2_x86_64.tar.gz"
        assert artifacts.host_toolchain.local_path == cache / "host_swift_5.9.2_x86_64.tar.gz"
        assert "ubuntu2204/" in artifacts.host_toolchain.remote_url
        assert artifacts.target_toolchain.identifier == "target_swift_5.9.2_aarch64.tar.gz"
        assert artifacts.target_toolchain.sha256 == TARGET_SHA
        assert artifacts.linker.identifier == "host_lld_17.0.5_x86_64.tar.xz"
        assert len(artifacts.os_packages) == len(config.versions.linux_distribution.required_packages)
        assert "jammy_libc6-dev_arm64.deb" in {p.identifier for p in artifacts.os_packages}

    def test_container_mode_has_no_target_or_packages(self, tmp_dir: Path):
        versions = VersionsConfiguration(
            linux_distribution=LinuxDistribution(name=DistributionName.RHEL, version="ubi9")
        )
        config = GeneratorConfig.build(tmp_dir, versions, use_container=True)
        artifacts = build_artifact_set(config, _full_lock(versions.linux_distribution))

        assert artifacts.target_toolchain is None
        assert artifacts.os_packages == ()
        assert [a.role for a in artifacts.all_items] == [ArtifactRole.HOST_TOOLCHAIN, ArtifactRole.LINKER]
        # Host toolchain is always the Ubuntu build.
        assert "ubuntu22.04" in artifacts.host_toolchain.remote_url

    def test_lock_url_override(self, config: GeneratorConfig):
        lock = _full_lock(config.versions.linux_distribution)
        lock = lock.model_copy(
            update={
                "artifacts": {
                    **lock.artifacts,
                    ArtifactRole.LINKER: LockEntry(sha256=LLD_SHA, url="https://mirror.test/lld.tar.xz"),
                }
            }
        )
        artifacts = build_artifact_set(config, lock)
        assert artifacts.linker.remote_url == "https://mirror.test/lld.tar.xz"

    def test_checksum_is_lowercased(self, config: GeneratorConfig):
        lock = _full_lock(config.versions.linux_distribution)
        lock = lock.model_copy(
            update={
                "artifacts": {
                    **lock.artifacts,
                    ArtifactRole.HOST_TOOLCHAIN: LockEntry(sha256="A" * 64),
                }
            }
        )
        assert build_artifact_set(config, lock).host_toolchain.sha256 == "a" * 64

    def test_missing_checksum_fails_before_network(self, config: GeneratorConfig):
        lock = _full_lock(config.versions.linux_distribution)
        artifacts = dict(lock.artifacts)
        del artifacts[ArtifactRole.LINKER]
        with pytest.raises(ConfigurationError, match="no expected checksum"):
            build_artifact_set(config, lock.model_copy(update={"artifacts": artifacts}))

    def test_missing_package_entry(self, config: GeneratorConfig):
        lock = _full_lock(config.versions.linux_distribution)
        packages = dict(lock.packages)
        del packages["zlib1g-dev"]
        with pytest.raises(ConfigurationError) as excinfo:
            build_artifact_set(config, lock.model_copy(update={"packages": packages}))
        assert excinfo.value.context["packages"] == "zlib1g-dev"

    def test_package_entry_without_url(self, config: GeneratorConfig):
        lock = _full_lock(config.versions.linux_distribution)
        packages = dict(lock.packages)
        packages["libc6"] = LockEntry(sha256="d" * 64)
        with pytest.raises(ConfigurationError, match="libc6 has no url"):
            build_artifact_set(config, lock.model_copy(update={"packages": packages}))

    def test_reads_lock_file_from_config(self, tmp_dir: Path):
        config = GeneratorConfig.build(tmp_dir)
        lock = _full_lock(config.versions.linux_distribution)
        config.artifact_lock_path.write_text(lock.model_dump_json())

        artifacts = build_artifact_set(config)
        assert artifacts.linker.sha256 == LLD_SHA
