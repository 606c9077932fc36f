"""Stage 4: Post-Assembly Patching.

Runs after every file a symlink might reference is in place:
    - absolute symlinks under the sysroot and toolchain become relative;
    - the target's ``glibc.modulemap`` loses its absolute header paths;
    - ``swift-autolink-extract`` is linked to ``swift`` when missing.
"""

from __future__ import annotations

from typing import Any

from sdkforge.core.patcher import (
    fix_absolute_symlinks,
    fix_glibc_module_map,
    glibc_module_map_path,
    repair_tool_symlink,
)
from sdkforge.stages.base import BaseStage

AUTOLINK_EXTRACT = "swift-autolink-extract"


class PatchStage(BaseStage):
    """Stage 4: Post-Assembly Patching."""

    @property
    def stage_id(self) -> str:
        return "s4_patch"

    @property
    def display_name(self) -> str:
        return "Post-Assembly Patching"

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        config = self.config(run_context)
        paths = config.paths

        fixed_links = fix_absolute_symlinks(paths.sdk_dir_path)
        fixed_links += fix_absolute_symlinks(paths.toolchain_dir_path)

        module_map = glibc_module_map_path(
            paths.sdk_dir_path, config.versions.target_triple.cpu.linux_convention_name
        )
        headers = fix_glibc_module_map(module_map)

        created = repair_tool_symlink(paths.toolchain_bin_dir_path, AUTOLINK_EXTRACT, "swift")

        return {
            "fixed_symlinks": len(fixed_links),
            "module_map": str(module_map),
            "module_map_headers": headers,
            "autolink_extract_created": created,
        }
