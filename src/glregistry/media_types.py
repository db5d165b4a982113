"""
Docker and OCI media types and constants.

Single source of truth for all media types the registry flows negotiate.
"""
from __future__ import annotations

# Single-platform manifests
DOCKER_MANIFEST_V2 = "application/vnd.docker.distribution.manifest.v2+json"
OCI_IMAGE_MANIFEST = "application/vnd.oci.image.manifest.v1+json"

# Multi-platform manifests
DOCKER_MANIFEST_LIST_V2 = "application/vnd.docker.distribution.manifest.list.v2+json"
OCI_IMAGE_INDEX = "application/vnd.oci.image.index.v1+json"

OCTET_STREAM = "application/octet-stream"

IMAGE_MANIFEST_TYPES = (DOCKER_MANIFEST_V2, OCI_IMAGE_MANIFEST)
MANIFEST_LIST_TYPES = (DOCKER_MANIFEST_LIST_V2, OCI_IMAGE_INDEX)

# Accept header for a tag lookup (order matters for some registries)
ACCEPT_ANY_MANIFEST = (
    DOCKER_MANIFEST_V2,
    OCI_IMAGE_MANIFEST,
    DOCKER_MANIFEST_LIST_V2,
    OCI_IMAGE_INDEX,
)
ACCEPT_IMAGE_MANIFEST = IMAGE_MANIFEST_TYPES
ACCEPT_BLOB = (OCTET_STREAM,)

# Output file names
MANIFEST_LIST_FILENAME = "manifest_list.json"
IMAGE_MANIFEST_FILENAME = "image_manifest.json"
LAYERS_DIRNAME = "layers"


__all__ = [
    "DOCKER_MANIFEST_V2",
    "OCI_IMAGE_MANIFEST",
    "DOCKER_MANIFEST_LIST_V2",
    "OCI_IMAGE_INDEX",
    "OCTET_STREAM",
    "IMAGE_MANIFEST_TYPES",
    "MANIFEST_LIST_TYPES",
    "ACCEPT_ANY_MANIFEST",
    "ACCEPT_IMAGE_MANIFEST",
    "ACCEPT_BLOB",
    "MANIFEST_LIST_FILENAME",
    "IMAGE_MANIFEST_FILENAME",
    "LAYERS_DIRNAME",
]
