"""Archive extraction for toolchain tarballs.

Supports ``.tar``, ``.tar.gz``, ``.tar.xz``, ``.tar.bz2`` (via ``tarfile``)
and ``.tar.zst`` (via ``zstandard``). Extraction overwrites whatever is
already on disk, so running it twice over the same tree is safe.

Members are passed through ``tarfile.tar_filter``: anything that would land
outside the destination is rejected. Absolute *symlink targets* are kept
as-is; the patcher makes them relative afterwards.
"""

from __future__ import annotations

import logging
import os
import shutil
import tarfile
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path, PurePosixPath

import zstandard

from sdkforge.errors import AssemblyError

logger = logging.getLogger(__name__)

MemberPredicate = Callable[[str], bool]


@contextmanager
def open_archive(archive: Path) -> Iterator[tarfile.TarFile]:
    """Open *archive* for sequential reading, picking the codec by suffix."""
    if archive.name.endswith(".zst"):
        with archive.open("rb") as raw:
            reader = zstandard.ZstdDecompressor().stream_reader(raw)
            with reader, tarfile.open(fileobj=reader, mode="r|") as tar:
                yield tar
    else:
        with tarfile.open(archive, mode="r:*") as tar:
            yield tar


def _strip(name: str, components: int) -> str | None:
    parts = PurePosixPath(name).parts
    if parts and parts[0] == "/":
        parts = parts[1:]
    if len(parts) <= components:
        return None
    return "/".join(parts[components:])


def extract_archive(
    archive: Path,
    destination: Path,
    *,
    strip_components: int = 0,
    include: MemberPredicate | None = None,
) -> int:
    """Extract *archive* into *destination*.

    Parameters
    ----------
    strip_components:
        Number of leading path components removed from every member name,
        like ``tar --strip-components``.
    include:
        Optional predicate on the stripped member name.

    Returns the number of members extracted.
    """
    logger.debug("Extracting %s into %s", archive.name, destination)
    destination.mkdir(parents=True, exist_ok=True)
    count = 0
    try:
        with open_archive(archive) as tar:
            for member in tar:
                name = _strip(member.name, strip_components)
                if name is None or (include is not None and not include(name)):
                    continue
                changes: dict[str, str] = {"name": name}
                if member.islnk():
                    linkname = _strip(member.linkname, strip_components)
                    if linkname is None:
                        continue
                    changes["linkname"] = linkname
                # Existing links are replaced, never followed.
                target = destination / name
                if target.is_symlink() or (target.is_file() and member.isdir()):
                    target.unlink()

                filtered = tarfile.tar_filter(member.replace(**changes, deep=False), str(destination))
                tar.extract(filtered, destination, filter="fully_trusted")
                count += 1
    except (tarfile.TarError, zstandard.ZstdError, OSError) as exc:
        raise AssemblyError(
            f"Cannot extract {archive.name}: {exc}",
            context={"archive": str(archive), "destination": str(destination)},
        ) from exc

    logger.debug("Extracted %d member(s) from %s", count, archive.name)
    return count


def extract_single_file(
    archive: Path,
    match: MemberPredicate,
    target: Path,
    *,
    mode: int = 0o755,
) -> str:
    """Copy the first regular-file member whose name satisfies *match* to *target*.

    Returns the archive member name that was used.
    """
    try:
        with open_archive(archive) as tar:
            for member in tar:
                if not member.isfile() or not match(member.name):
                    continue
                source = tar.extractfile(member)
                if source is None:
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                if target.is_symlink() or target.exists():
                    target.unlink()
                with source, target.open("wb") as out:
                    shutil.copyfileobj(source, out)
                os.chmod(target, mode)
                return member.name
    except (tarfile.TarError, zstandard.ZstdError, OSError) as exc:
        raise AssemblyError(
            f"Cannot extract from {archive.name}: {exc}",
            context={"archive": str(archive), "target": str(target)},
        ) from exc

    raise AssemblyError(
        f"No matching member found in {archive.name}",
        context={"archive": str(archive), "target": str(target)},
    )
