"""Stage 1: Cache Validation.

Decides whether every artifact in the download cache can be reused. The
verdict is stored on the run context as ``cache_valid`` and gates Stage 2.
"""

from __future__ import annotations

from typing import Any

from sdkforge.core.cache_validator import CacheValidator
from sdkforge.stages.base import BaseStage


class CacheValidationStage(BaseStage):
    """Stage 1: Cache Validation."""

    def __init__(self, validator: CacheValidator | None = None) -> None:
        self._validator = validator or CacheValidator()

    @property
    def stage_id(self) -> str:
        return "s1_cache"

    @property
    def display_name(self) -> str:
        return "Cache Validation"

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        artifacts = self.artifacts(run_context)
        valid = self._validator.is_cache_valid(artifacts)
        run_context["cache_valid"] = valid
        return {"cache_valid": valid, "artifact_count": len(artifacts)}
