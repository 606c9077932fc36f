"""Descriptor documents written into the bundle.

Field names are snake_case in Python and camelCase on disk.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Document(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2) + "\n"


class ToolProperties(_Document):
    path: str | None = None
    extra_cli_options: list[str] | None = Field(default=None, alias="extraCLIOptions")


class ToolsetDescriptor(_Document):
    """``toolset.json``: concrete tool paths and flags."""

    schema_version: str = "1.0"
    root_path: str
    swift_compiler: ToolProperties | None = None
    cxx_compiler: ToolProperties | None = None
    linker: ToolProperties | None = None


class TargetTripleProperties(_Document):
    sdk_root_path: str
    swift_resources_path: str
    swift_static_resources_path: str
    toolset_paths: list[str]


class DestinationDescriptor(_Document):
    """``swift-sdk.json``: how a build tool targets this SDK."""

    schema_version: str = "4.0"
    target_triples: dict[str, TargetTripleProperties]


class BundleVariant(_Document):
    path: str


class BundleArtifact(_Document):
    type: str = "swiftSDK"
    version: str
    variants: list[BundleVariant]


class ArtifactBundleManifest(_Document):
    """``info.json``: makes the directory installable as an artifact bundle."""

    schema_version: str = "1.0"
    artifacts: dict[str, BundleArtifact]
