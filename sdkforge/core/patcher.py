"""Post-assembly fixes that make the bundle relocatable and usable.

All three steps are idempotent and independent of each other:

* :func:`fix_absolute_symlinks`: absolute symlink targets become relative.
* :func:`fix_glibc_module_map`: absolute header paths in the Glibc module
  map are replaced by shims inside the sysroot.
* :func:`repair_tool_symlink`: create a missing tool symlink.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path, PurePosixPath

from sdkforge.errors import ConfigurationError, FilesystemError

logger = logging.getLogger(__name__)

# ``header "/usr/include/<arch>-linux-gnu/sys/types.h"`` with optional arch dir
_ABSOLUTE_HEADER = re.compile(
    r'(?P<keyword>\bheader\s+)"/+usr/include/(?:[A-Za-z0-9_]+-linux-gnu/)?(?P<path>[^"]+)"'
)

PRIVATE_INCLUDES_DIR = "private_includes"


# ----------------------------------------------------------------------
# Symlinks
# ----------------------------------------------------------------------


def _find_symlinks(root: Path) -> list[Path]:
    links = []
    for dirpath, dirnames, filenames in os.walk(root):
        for name in dirnames + filenames:
            candidate = Path(dirpath) / name
            if candidate.is_symlink():
                links.append(candidate)
    return sorted(links)


def relative_link_target(link: Path, absolute_target: str, root: Path) -> str:
    """Compute the relative replacement for *link* → *absolute_target*.

    A target already inside *root* is relativised directly. Any other absolute
    target is interpreted as rooted at *root* (``/usr/lib/x`` inside a sysroot
    means ``<root>/usr/lib/x``).
    """
    target = PurePosixPath(absolute_target)
    root_posix = PurePosixPath(root.as_posix())
    if target == root_posix or root_posix in target.parents:
        resolved = target
    else:
        resolved = root_posix.joinpath(*target.parts[1:])
    return os.path.relpath(resolved, PurePosixPath(link.parent.as_posix()))


def fix_absolute_symlinks(root: Path) -> list[Path]:
    """Rewrite every absolute symlink under *root* to a relative one.

    Returns the links that were rewritten. Running it again finds nothing to do.
    """
    if not root.exists():
        return []

    fixed: list[Path] = []
    for link in _find_symlinks(root):
        target = os.readlink(link)
        if not target.startswith("/"):
            continue
        relative = relative_link_target(link, target, root)
        try:
            link.unlink()
            link.symlink_to(relative)
        except OSError as exc:
            raise FilesystemError(
                "Cannot rewrite symlink",
                context={"path": str(link), "target": target},
            ) from exc
        logger.debug("%s: %s -> %s", link, target, relative)
        fixed.append(link)

    if fixed:
        logger.info("Fixed %d absolute symlink(s) under %s", len(fixed), root)
    return fixed


# ----------------------------------------------------------------------
# Glibc module map
# ----------------------------------------------------------------------


def glibc_module_map_path(sdk_dir: Path, linux_cpu_name: str) -> Path:
    return sdk_dir / "usr" / "lib" / "swift" / "linux" / linux_cpu_name / "glibc.modulemap"


def fix_glibc_module_map(path: Path) -> list[str]:
    """Replace absolute ``/usr/include`` headers in *path* with local shims.

    Each ``header "/usr/include/[<arch>-linux-gnu/]a/b.h"`` becomes
    ``header "private_includes/a_b.h"``, and that shim file contains
    ``#include <a/b.h>`` so the header is found through the sysroot.

    Returns the rewritten header paths. Raises ``ConfigurationError`` when the
    module map does not exist.
    """
    logger.info("Fixing absolute paths in `glibc.modulemap`...")
    if not path.is_file():
        raise ConfigurationError(
            "Expected glibc.modulemap is missing from the assembled SDK",
            context={"path": str(path)},
        )

    private_includes = path.parent / PRIVATE_INCLUDES_DIR
    rewritten: list[str] = []

    def _replace(match: re.Match[str]) -> str:
        header = match.group("path")
        shim_name = header.replace("/", "_")
        shim = private_includes / shim_name
        shim.write_text(f"#include <{header}>\n", encoding="utf-8")
        rewritten.append(header)
        return f'{match.group("keyword")}"{PRIVATE_INCLUDES_DIR}/{shim_name}"'

    try:
        original = path.read_text(encoding="utf-8")
        private_includes.mkdir(parents=True, exist_ok=True)
        patched = _ABSOLUTE_HEADER.sub(_replace, original)
        if patched != original:
            path.write_text(patched, encoding="utf-8")
    except OSError as exc:
        raise FilesystemError(
            "Cannot patch glibc.modulemap",
            context={"path": str(path)},
        ) from exc
    return rewritten


# ----------------------------------------------------------------------
# Missing tool symlink
# ----------------------------------------------------------------------


def repair_tool_symlink(bin_dir: Path, tool: str, points_to: str) -> bool:
    """Create ``bin_dir/tool`` → ``points_to`` unless something already exists there.

    Returns True if the symlink was created.
    """
    link = bin_dir / tool
    if os.path.lexists(link):
        return False

    logger.info("Fixing `%s` symlink...", tool)
    try:
        bin_dir.mkdir(parents=True, exist_ok=True)
        link.symlink_to(points_to)
    except OSError as exc:
        raise FilesystemError(
            f"Cannot create {tool} symlink",
            context={"path": str(link), "target": points_to},
        ) from exc
    return True
