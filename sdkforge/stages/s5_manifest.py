"""Stage 5: Manifest Emission.

Writes the toolset descriptor, the destination descriptor and the bundle
manifest. Paths inside them refer to the patched tree.
"""

from __future__ import annotations

from typing import Any

from sdkforge.core.manifests import emit_manifests
from sdkforge.stages.base import BaseStage


class ManifestStage(BaseStage):
    """Stage 5: Manifest Emission."""

    @property
    def stage_id(self) -> str:
        return "s5_manifest"

    @property
    def display_name(self) -> str:
        return "Manifest Emission"

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        written = emit_manifests(self.config(run_context))
        return {"manifests": [str(path) for path in written]}
