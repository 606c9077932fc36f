"""Stage 2: Artifact Fetch.

Skipped entirely when Stage 1 found the cache valid. Otherwise every missing
or corrupt artifact is downloaded; valid ones are left untouched.
"""

from __future__ import annotations

from typing import Any

from sdkforge.core.fetcher import Fetcher
from sdkforge.stages.base import BaseStage


class FetchStage(BaseStage):
    """Stage 2: Artifact Fetch."""

    def __init__(self, fetcher: Fetcher | None = None) -> None:
        self._fetcher = fetcher or Fetcher()

    @property
    def stage_id(self) -> str:
        return "s2_fetch"

    @property
    def display_name(self) -> str:
        return "Artifact Fetch"

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        if run_context.get("cache_valid"):
            return {"skipped": True, "downloaded": []}
        downloaded = self._fetcher.fetch_all(self.artifacts(run_context).all_items)
        return {"skipped": False, "downloaded": downloaded}
