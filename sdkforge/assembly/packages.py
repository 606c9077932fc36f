"""Debian package unpacking.

A ``.deb`` is an ``ar`` archive holding ``data.tar.<codec>``. The ``ar`` tool
splits it; the payload is extracted with :func:`extract_archive`.
"""

from __future__ import annotations

import logging
import subprocess
import tempfile
from collections.abc import Callable
from pathlib import Path

from sdkforge.assembly.archives import extract_archive
from sdkforge.errors import AssemblyError

logger = logging.getLogger(__name__)

CommandRunner = Callable[..., subprocess.CompletedProcess]


class DebianPackageUnpacker:
    """Unpacks ``.deb`` payloads into a sysroot.

    Parameters
    ----------
    runner:
        Callable with the ``subprocess.run`` signature.
    """

    def __init__(self, runner: CommandRunner = subprocess.run) -> None:
        self._runner = runner

    def unpack(self, package: Path, destination: Path) -> int:
        """Extract the payload of *package* into *destination*.

        Returns the number of payload members extracted.
        """
        with tempfile.TemporaryDirectory(prefix="sdkforge-deb-") as tmp:
            workdir = Path(tmp)
            try:
                self._runner(
                    ["ar", "x", str(package.absolute())],
                    cwd=workdir,
                    check=True,
                    capture_output=True,
                    text=True,
                )
            except (subprocess.CalledProcessError, OSError) as exc:
                raise AssemblyError(
                    f"Cannot split package {package.name}: {exc}",
                    context={"package": str(package)},
                ) from exc

            payloads = sorted(workdir.glob("data.tar*"))
            if not payloads:
                raise AssemblyError(
                    f"Package {package.name} has no data payload",
                    context={"package": str(package)},
                )
            logger.debug("Unpacking %s into %s", package.name, destination)
            return extract_archive(payloads[0], destination)
