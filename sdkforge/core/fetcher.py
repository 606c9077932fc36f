"""Artifact fetcher: downloads missing or corrupt artifacts into the cache.

Each artifact is re-evaluated on its own: a file that is already present and
matches its checksum is left alone. Downloads run concurrently in a bounded
thread pool sharing one ``httpx.Client``.

Network behaviour:
    - HTTP/1.1 only (some hosts answer HEAD probes incorrectly over HTTP/2).
    - Redirects are followed manually: at most ``MAX_REDIRECT_HOPS`` hops,
      revisiting a URL is an error.
    - A ``HEAD`` probe precedes each download to learn the expected size. Any
      probe answer, including a 4xx from hosts that mishandle HEAD, is
      tolerated and the GET proceeds.
    - Bodies are streamed to ``<file>.part`` while hashing and moved into
      place with ``os.replace`` only once the checksum matches.

There is no retry at this layer. The first failure (in artifact order) is
raised after every in-flight download has finished.
"""

from __future__ import annotations

import hashlib
import logging
import os
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import httpx

from sdkforge.core.cache_validator import is_checksum_valid
from sdkforge.errors import ArtifactFetchError, FilesystemError
from sdkforge.models.artifacts import ArtifactDescriptor

logger = logging.getLogger(__name__)

MAX_REDIRECT_HOPS = 5


class Fetcher:
    """Downloads artifacts over HTTP(S).

    Parameters
    ----------
    max_workers:
        Size of the download thread pool.
    timeout:
        Timeout in seconds applied to each request.
    transport:
        Optional ``httpx`` transport, used by tests to stub the network.
    """

    def __init__(
        self,
        *,
        max_workers: int = 4,
        timeout: float = 300.0,
        user_agent: str = "sdkforge",
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._max_workers = max(1, max_workers)
        self._timeout = timeout
        self._user_agent = user_agent
        self._transport = transport

    def _make_client(self) -> httpx.Client:
        return httpx.Client(
            transport=self._transport,
            follow_redirects=False,
            http1=True,
            http2=False,
            timeout=httpx.Timeout(self._timeout),
            headers={"User-Agent": self._user_agent},
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def fetch_all(self, artifacts: Iterable[ArtifactDescriptor]) -> list[str]:
        """Ensure every artifact is cached and valid.

        Returns the identifiers of the artifacts that were downloaded.
        """
        pending = [item for item in artifacts if not is_checksum_valid(item)]
        if not pending:
            logger.info("All artifacts already cached")
            return []

        logger.info("Downloading %d artifact(s)...", len(pending))
        with self._make_client() as client, ThreadPoolExecutor(
            max_workers=min(self._max_workers, len(pending)),
            thread_name_prefix="sdkforge-fetch",
        ) as executor:
            futures = [executor.submit(self._download, client, item) for item in pending]
            errors = [future.exception() for future in futures]

        for error in errors:
            if error is not None:
                raise error
        return [item.identifier for item in pending]

    def fetch(self, artifact: ArtifactDescriptor) -> bool:
        """Fetch a single artifact. Returns True if it was downloaded."""
        if is_checksum_valid(artifact):
            return False
        with self._make_client() as client:
            self._download(client, artifact)
        return True

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    def _send(self, client: httpx.Client, method: str, url: str) -> httpx.Response:
        """Send *method* to *url*, following redirects. Returns an open streaming response."""
        visited = {url}
        request = client.build_request(method, url)
        for hop in range(MAX_REDIRECT_HOPS + 1):
            response = client.send(request, stream=True)
            next_request = response.next_request
            if next_request is None:
                return response
            response.close()

            next_url = str(next_request.url)
            if hop == MAX_REDIRECT_HOPS:
                raise ArtifactFetchError(
                    f"Too many redirects (more than {MAX_REDIRECT_HOPS})",
                    context={"url": url},
                )
            if next_url in visited:
                raise ArtifactFetchError(
                    "Redirect cycle detected",
                    context={"url": url, "repeated": next_url},
                )
            visited.add(next_url)
            logger.debug("%s %s redirected to %s", method, url, next_url)
            request = next_request
        raise AssertionError("unreachable")

    def _probe(self, client: httpx.Client, artifact: ArtifactDescriptor) -> int | None:
        """HEAD the artifact URL and return the advertised size, if any."""
        try:
            response = self._send(client, "HEAD", artifact.remote_url)
        except (httpx.HTTPError, httpx.InvalidURL, ArtifactFetchError) as exc:
            logger.warning("Probe of %s failed (%s); fetching anyway", artifact.identifier, exc)
            return None
        try:
            if not response.is_success:
                logger.warning(
                    "Probe of %s returned HTTP %d; fetching anyway",
                    artifact.identifier,
                    response.status_code,
                )
                return None
            length = response.headers.get("content-length")
        finally:
            response.close()
        return int(length) if length and length.isdigit() else None

    def _download(self, client: httpx.Client, artifact: ArtifactDescriptor) -> None:
        size = self._probe(client, artifact)
        logger.info(
            "Downloading %s%s",
            artifact.identifier,
            f" ({size / (1024 * 1024):.1f} MiB)" if size is not None else "",
        )

        target = artifact.local_path
        part = target.with_name(target.name + ".part")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemError(
                "Cannot create the artifact cache directory",
                context={"path": str(target.parent)},
            ) from exc

        try:
            response = self._send(client, "GET", artifact.remote_url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise ArtifactFetchError(
                f"Download of {artifact.identifier} failed: {exc}",
                context={"artifact": artifact.identifier, "url": artifact.remote_url},
            ) from exc
        except ArtifactFetchError as exc:
            exc.context.setdefault("artifact", artifact.identifier)
            raise

        try:
            if not response.is_success:
                raise ArtifactFetchError(
                    f"Download of {artifact.identifier} returned HTTP {response.status_code}",
                    context={"artifact": artifact.identifier, "url": artifact.remote_url},
                )
            actual = self._stream_to(response, part, artifact)
        finally:
            response.close()

        if actual != (artifact.sha256 or "").lower():
            part.unlink(missing_ok=True)
            raise ArtifactFetchError(
                f"Checksum mismatch for downloaded artifact {artifact.identifier}",
                context={
                    "artifact": artifact.identifier,
                    "url": artifact.remote_url,
                    "expected": artifact.sha256 or "",
                    "actual": actual,
                },
            )

        try:
            os.replace(part, target)
        except OSError as exc:
            raise FilesystemError(
                f"Cannot move artifact {artifact.identifier} into the cache",
                context={"path": str(target)},
            ) from exc
        logger.debug("Stored %s at %s", artifact.identifier, target)

    @staticmethod
    def _stream_to(response: httpx.Response, part: Path, artifact: ArtifactDescriptor) -> str:
        digest = hashlib.sha256()
        try:
            with part.open("wb") as fh:
                for chunk in response.iter_bytes():
                    fh.write(chunk)
                    digest.update(chunk)
        except httpx.HTTPError as exc:
            part.unlink(missing_ok=True)
            raise ArtifactFetchError(
                f"Download of {artifact.identifier} was interrupted: {exc}",
                context={"artifact": artifact.identifier, "url": artifact.remote_url},
            ) from exc
        except OSError as exc:
            part.unlink(missing_ok=True)
            raise FilesystemError(
                f"Cannot write artifact {artifact.identifier}",
                context={"path": str(part)},
            ) from exc
        return digest.hexdigest()
