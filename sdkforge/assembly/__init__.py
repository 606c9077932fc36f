"""Unpacking and copying of toolchain artifacts into the working tree."""

from sdkforge.assembly.archives import extract_archive, extract_single_file
from sdkforge.assembly.packages import DebianPackageUnpacker
from sdkforge.assembly.target_sources import (
    ArchiveTargetSource,
    ContainerTargetSource,
    TargetToolchainSource,
    select_target_source,
)

__all__ = [
    "ArchiveTargetSource",
    "ContainerTargetSource",
    "DebianPackageUnpacker",
    "TargetToolchainSource",
    "extract_archive",
    "extract_single_file",
    "select_target_source",
]
