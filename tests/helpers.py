"""Test doubles and builders for a miniature artifact world.

Real tarballs for the host toolchain, target toolchain and linker, ``.deb``
stand-ins for OS packages, an ``httpx.MockTransport`` serving them, and a
fake command runner standing in for ``ar`` and the container runtime.
"""

from __future__ import annotations

import hashlib
import io
import shutil
import subprocess
import tarfile
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

import httpx

from sdkforge.models.artifacts import ArtifactDescriptor, ArtifactRole, DownloadableArtifactSet

GLIBC_MODULE_MAP = """\
module SwiftGlibc [system] {
  link "m"
  module C {
    module stdio {
      header "/usr/include/stdio.h"
      export *
    }
    module types {
      header "/usr/include/aarch64-linux-gnu/sys/types.h"
      export *
    }
  }
}
"""


# ---------------------------------------------------------------------------
# Archive builders
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Link:
    """A symlink entry for :func:`make_tar`."""

    target: str


TarEntries = Mapping[str, "bytes | Link"]


def make_tar(path: Path, entries: TarEntries, mode: str = "w:gz") -> Path:
    """Write a tarball containing *entries* (name -> bytes or Link)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(path, mode) as tar:
        for name, value in entries.items():
            info = tarfile.TarInfo(name)
            info.mtime = 1_700_000_000
            if isinstance(value, Link):
                info.type = tarfile.SYMTYPE
                info.linkname = value.target
                info.mode = 0o777
                tar.addfile(info)
            else:
                info.size = len(value)
                info.mode = 0o755 if "/bin/" in f"/{name}" else 0o644
                tar.addfile(info, io.BytesIO(value))
    return path


def sha256_of(path: Path) -> str:
    return hashlib.sha256(path.read_bytes()).hexdigest()


def snapshot_tree(root: Path) -> dict[str, str]:
    """Map every path under *root* to its content digest or link target."""
    result: dict[str, str] = {}
    for path in sorted(root.rglob("*")):
        key = path.relative_to(root).as_posix()
        if path.is_symlink():
            result[key] = f"-> {path.readlink()}"
        elif path.is_file():
            result[key] = hashlib.sha256(path.read_bytes()).hexdigest()
        else:
            result[key] = "<dir>"
    return result


def absolute_symlinks(root: Path) -> list[Path]:
    return [p for p in root.rglob("*") if p.is_symlink() and str(p.readlink()).startswith("/")]


# ---------------------------------------------------------------------------
# Network stub
# ---------------------------------------------------------------------------


class FakeArtifactServer:
    """Serves bytes per URL through ``httpx.MockTransport``.

    ``routes`` maps a URL to either the body bytes or an ``httpx.Response``
    factory. Every request is recorded in ``requests`` as ``(method, url)``.
    """

    def __init__(self) -> None:
        self.routes: dict[str, bytes | Callable[[httpx.Request], httpx.Response]] = {}
        self.head_status: dict[str, int] = {}
        self.requests: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def serve(self, url: str, body: bytes) -> None:
        self.routes[url] = body

    def redirect(self, url: str, location: str, status: int = 302) -> None:
        self.routes[url] = lambda request: httpx.Response(status, headers={"Location": location})

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        with self._lock:
            self.requests.append((request.method, url))
        route = self.routes.get(url)
        if route is None:
            return httpx.Response(404)
        if callable(route):
            return route(request)
        if request.method == "HEAD":
            status = self.head_status.get(url, 200)
            return httpx.Response(status, headers={"Content-Length": str(len(route))})
        return httpx.Response(200, content=route)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def get_requests(self) -> list[str]:
        return [url for method, url in self.requests if method == "GET"]


# ---------------------------------------------------------------------------
# Command runner stub
# ---------------------------------------------------------------------------


@dataclass
class FakeRunner:
    """Stands in for ``subprocess.run`` for ``ar`` and the container runtime.

    * ``ar x <deb>`` copies the package file into ``cwd`` as ``data.tar.gz``
      (test packages are plain gzipped tarballs).
    * ``docker create`` returns a container id; ``docker cp`` copies from
      ``image_root``; ``docker rm`` succeeds.
    """

    image_root: Path | None = None
    fail_on: str | None = None
    commands: list[list[str]] = field(default_factory=list)

    def __call__(self, command: list[str], **kwargs) -> subprocess.CompletedProcess:
        command = list(command)
        self.commands.append(command)
        tool, action = command[0], command[1]
        if self.fail_on == action:
            raise subprocess.CalledProcessError(1, command, stderr=f"{action} failed")

        stdout = ""
        if tool == "ar" and action == "x":
            shutil.copyfile(command[2], Path(kwargs["cwd"]) / "data.tar.gz")
        elif action == "create":
            stdout = "c0ffee\n"
        elif action == "cp":
            assert self.image_root is not None
            source = command[2].split(":", 1)[1].rstrip(".").strip("/")
            shutil.copytree(self.image_root / source, Path(command[3]), symlinks=True, dirs_exist_ok=True)
        return subprocess.CompletedProcess(command, 0, stdout=stdout, stderr="")

    def actions(self) -> list[str]:
        return [command[1] for command in self.commands]


# ---------------------------------------------------------------------------
# Artifact world
# ---------------------------------------------------------------------------


@dataclass
class ArtifactWorld:
    """Upstream archives plus a descriptor set pointing at an empty cache."""

    upstream: Path
    cache: Path
    server: FakeArtifactServer
    artifacts: DownloadableArtifactSet

    def populate_cache(self) -> None:
        """Copy every upstream file into the cache, as a previous run would have."""
        for item in self.artifacts.all_items:
            item.local_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(self.upstream / item.identifier, item.local_path)


def build_upstream_archives(upstream: Path) -> dict[str, tuple[ArtifactRole, Path]]:
    host = make_tar(
        upstream / "host_swift_5.9.2_x86_64.tar.gz",
        {
            "swift-5.9.2-RELEASE-ubuntu22.04/usr/bin/swift": b"#!swift driver\n",
            "swift-5.9.2-RELEASE-ubuntu22.04/usr/bin/swiftc": Link("swift"),
            "swift-5.9.2-RELEASE-ubuntu22.04/usr/lib/swift/host/libswiftCore.so": b"host core\n",
        },
    )
    target = make_tar(
        upstream / "target_swift_5.9.2_aarch64.tar.gz",
        {
            "swift-5.9.2-RELEASE-ubuntu22.04-aarch64/usr/bin/swift": b"target driver\n",
            "swift-5.9.2-RELEASE-ubuntu22.04-aarch64/usr/lib/swift/linux/aarch64/glibc.modulemap": GLIBC_MODULE_MAP.encode(),
            "swift-5.9.2-RELEASE-ubuntu22.04-aarch64/usr/lib/swift/linux/libswiftCore.so": b"target core\n",
            "swift-5.9.2-RELEASE-ubuntu22.04-aarch64/usr/lib/swift_static/linux/libswiftCore.a": b"static core\n",
        },
    )
    linker = make_tar(
        upstream / "host_lld_17.0.5_x86_64.tar.xz",
        {
            "clang+llvm-17.0.5-x86_64-linux-gnu-ubuntu-22.04/bin/lld": b"\x7fELF lld\n",
            "clang+llvm-17.0.5-x86_64-linux-gnu-ubuntu-22.04/bin/ld.lld": Link("lld"),
        },
        mode="w:xz",
    )
    libc = make_tar(
        upstream / "jammy_libc6-dev_arm64.deb",
        {
            "./usr/include/stdio.h": b"/* stdio */\n",
            "./usr/include/aarch64-linux-gnu/sys/types.h": b"/* types */\n",
            "./usr/lib/aarch64-linux-gnu/libc.so": Link("/lib/aarch64-linux-gnu/libc.so.6"),
            "./lib/aarch64-linux-gnu/libc.so.6": b"libc\n",
        },
    )
    stdcxx = make_tar(
        upstream / "jammy_libstdc++6_arm64.deb",
        {
            "./usr/lib/aarch64-linux-gnu/libstdc++.so.6.0.30": b"libstdc++\n",
            "./usr/lib/aarch64-linux-gnu/libstdc++.so.6": Link("libstdc++.so.6.0.30"),
        },
    )
    return {
        "host": (ArtifactRole.HOST_TOOLCHAIN, host),
        "target": (ArtifactRole.TARGET_TOOLCHAIN, target),
        "linker": (ArtifactRole.LINKER, linker),
        "libc": (ArtifactRole.OS_PACKAGE, libc),
        "stdcxx": (ArtifactRole.OS_PACKAGE, stdcxx),
    }


def make_world(
    root: Path, cache: Path, *, include: tuple[str, ...] | None = None
) -> ArtifactWorld:
    upstream = root / "upstream"
    server = FakeArtifactServer()
    items = []
    for key, (role, path) in build_upstream_archives(upstream).items():
        if include is not None and key not in include:
            continue
        url = f"https://downloads.test/{path.name}"
        server.serve(url, path.read_bytes())
        items.append(
            ArtifactDescriptor(
                identifier=path.name,
                role=role,
                remote_url=url,
                local_path=cache / path.name,
                sha256=sha256_of(path),
            )
        )
    return ArtifactWorld(
        upstream=upstream,
        cache=cache,
        server=server,
        artifacts=DownloadableArtifactSet(items=tuple(items)),
    )
