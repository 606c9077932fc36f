"""Cache validation: can this run reuse previously downloaded artifacts?

The check is side-effect free. It fails fast when any local file is missing;
otherwise every artifact is hashed in a bounded thread pool, one task per
artifact. All tasks are joined before the aggregate is returned, so no
checksum computation is ever abandoned halfway.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

from sdkforge.core.hasher import checksum_matches
from sdkforge.models.artifacts import ArtifactDescriptor, DownloadableArtifactSet

logger = logging.getLogger(__name__)


def is_checksum_valid(artifact: ArtifactDescriptor) -> bool:
    """Return True if *artifact*'s cached file exists and matches its checksum.

    An unreadable path (a directory, no permission, a file removed mid-check)
    counts as invalid.
    """
    try:
        valid = checksum_matches(artifact.local_path, artifact.sha256 or "")
    except OSError as exc:
        logger.debug("Cannot read cached artifact %s: %s", artifact.identifier, exc)
        valid = False
    if not valid:
        logger.debug("Cached artifact %s is missing or corrupt", artifact.identifier)
    return valid


class CacheValidator:
    """Decides whether the download cache fully satisfies a run.

    Parameters
    ----------
    max_workers:
        Size of the checksum thread pool.
    """

    def __init__(self, max_workers: int = 8) -> None:
        self._max_workers = max(1, max_workers)

    def is_cache_valid(self, artifacts: DownloadableArtifactSet) -> bool:
        logger.info("Checking packages cache...")

        items = artifacts.all_items
        if not all(item.local_path.exists() for item in items):
            logger.info("Cache is incomplete, artifacts will be downloaded")
            return False
        if not items:
            return True

        with ThreadPoolExecutor(
            max_workers=min(self._max_workers, len(items)),
            thread_name_prefix="sdkforge-checksum",
        ) as executor:
            futures = [executor.submit(is_checksum_valid, item) for item in items]
            results = [future.result() for future in futures]

        valid = all(results)
        logger.info("Cache is %s", "valid" if valid else "invalid")
        return valid
