"""Stage 0: Workspace Preparation.

With from-scratch semantics the SDK and toolchain directories are removed
entirely, so no stale files leak into the new bundle. The cache, SDK and
toolchain directories are then created if needed.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Any

from sdkforge.errors import FilesystemError
from sdkforge.stages.base import BaseStage

logger = logging.getLogger(__name__)


def remove_recursively(path: Path) -> bool:
    """Remove *path* (file, symlink or tree). Returns True if something was removed."""
    try:
        if path.is_symlink() or path.is_file():
            path.unlink()
        elif path.is_dir():
            shutil.rmtree(path)
        else:
            return False
    except OSError as exc:
        raise FilesystemError("Cannot remove directory", context={"path": str(path)}) from exc
    return True


def create_directory_if_needed(path: Path) -> bool:
    """Create *path* and its parents. Returns True if it did not exist."""
    if path.is_dir():
        return False
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FilesystemError("Cannot create directory", context={"path": str(path)}) from exc
    return True


class PrepareWorkspaceStage(BaseStage):
    """Stage 0: Workspace Preparation."""

    @property
    def stage_id(self) -> str:
        return "s0_prepare"

    @property
    def display_name(self) -> str:
        return "Workspace Preparation"

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        config = self.config(run_context)
        paths = config.paths

        removed: list[str] = []
        if config.from_scratch:
            for path in (paths.sdk_dir_path, paths.toolchain_dir_path):
                if remove_recursively(path):
                    logger.info("Removed %s", path)
                    removed.append(str(path))

        created = [
            str(path)
            for path in (paths.artifacts_cache_path, paths.sdk_dir_path, paths.toolchain_dir_path)
            if create_directory_if_needed(path)
        ]
        return {"removed": removed, "created": created}
