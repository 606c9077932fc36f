"""Generator error taxonomy.

Every fatal condition raised by the pipeline derives from ``GeneratorError``.
Errors carry a small ``context`` mapping (artifact id, path, url) so the CLI
can print a single message naming what failed.

A checksum mismatch found while validating the cache is *not* an error: it
only demotes the cache and triggers a fetch.
"""

from __future__ import annotations

from collections.abc import Mapping


class GeneratorError(RuntimeError):
    """Base class for all fatal generator failures."""

    def __init__(
        self,
        message: str,
        *,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.context = dict(context or {})

    def __str__(self) -> str:
        parts = [super().__str__()]
        for key, value in self.context.items():
            if value:
                parts.append(f"  {key}: {value}")
        return "\n".join(parts)


class ConfigurationError(GeneratorError):
    """Unsupported distribution, missing checksum, or missing patch target."""


class ArtifactFetchError(GeneratorError):
    """A download could not complete or produced the wrong content."""


class AssemblyError(GeneratorError):
    """Extracting an archive or copying from a container failed."""


class FilesystemError(GeneratorError):
    """A directory, file, or symlink could not be created or removed."""


__all__ = [
    "ArtifactFetchError",
    "AssemblyError",
    "ConfigurationError",
    "FilesystemError",
    "GeneratorError",
]
