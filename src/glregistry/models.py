"""
Data models for registry manifests.

These Pydantic models give typed access to the parts of Docker v2 / OCI
manifests and manifest lists the download flow reads. Unknown fields are
ignored so newer manifest revisions still parse.
"""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Platform(BaseModel):
    """Platform of one manifest-list entry."""
    model_config = ConfigDict(extra="ignore")

    architecture: Optional[str] = Field(default=None, description="CPU architecture, e.g. amd64")
    os: Optional[str] = Field(default=None, description="Operating system, e.g. linux")
    variant: Optional[str] = Field(default=None, description="CPU variant, e.g. v8")

    def matches(self, architecture: str, os: str) -> bool:
        return self.architecture == architecture and self.os == os


class Descriptor(BaseModel):
    """Content descriptor: a reference to a blob or manifest by digest."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    media_type: Optional[str] = Field(default=None, alias="mediaType")
    digest: Optional[str] = Field(default=None, description="Content digest (sha256:...)")
    size: Optional[int] = Field(default=None, description="Size in bytes")
    platform: Optional[Platform] = Field(default=None, description="Only set in manifest lists")


class ImageManifest(BaseModel):
    """Single-platform image manifest."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    schema_version: Optional[int] = Field(default=None, alias="schemaVersion")
    media_type: Optional[str] = Field(default=None, alias="mediaType")
    config: Optional[Descriptor] = None
    layers: List[Descriptor] = Field(default_factory=list)


class ManifestIndex(BaseModel):
    """Multi-platform manifest list / OCI image index."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    schema_version: Optional[int] = Field(default=None, alias="schemaVersion")
    media_type: Optional[str] = Field(default=None, alias="mediaType")
    manifests: List[Descriptor] = Field(default_factory=list)
