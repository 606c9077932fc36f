"""sdkforge: Swift cross-compilation SDK bundle generator.

Produces a relocatable ``.artifactbundle`` that lets a host Swift toolchain
build for a Linux target:
  - Descriptor set of host toolchain, target toolchain, linker and OS packages
  - Concurrent checksum validation of the artifact cache
  - Redirect-capped HTTP/1.1 downloads with streamed checksum verification
  - Assembly from archives or a container image
  - Relocation patches (relative symlinks, glibc module map, autolink tool)
  - toolset.json, swift-sdk.json and info.json manifests
"""

__version__ = "0.1.0"
__description__ = "Swift cross-compilation SDK bundle generator"

from sdkforge.core.orchestrator import GenerationReport, SdkGenerator
from sdkforge.cli.app import app

__all__ = ["GenerationReport", "SdkGenerator", "app", "__version__"]
