"""
Manifest resolution.

Pure functions over already-fetched manifest data: media type detection,
platform selection from manifest lists, and output file naming.
"""
from __future__ import annotations

import json
import logging
from typing import Optional, Union

from pydantic import ValidationError

from .errors import ContentError, UnsupportedMediaType
from .media_types import IMAGE_MANIFEST_TYPES, MANIFEST_LIST_TYPES
from .models import Descriptor, ImageManifest, ManifestIndex

__all__ = [
    "detect_media_type",
    "is_manifest_list",
    "is_image_manifest",
    "parse_manifest",
    "select_platform_manifest",
    "layer_extension",
    "digest_filename",
]

logger = logging.getLogger(__name__)


def _load_json(body: Union[bytes, str]) -> dict:
    try:
        data = json.loads(body)
    except ValueError as e:
        raise ContentError(f"Manifest is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ContentError("Manifest is not a JSON object")
    return data


def detect_media_type(content_type: Optional[str], body: Union[bytes, str]) -> str:
    """
    Determine a manifest's media type.

    The ``Content-Type`` header wins when it looks like an ``application/*``
    type; otherwise the body's ``mediaType`` field is used.

    Args:
        content_type: Response Content-Type header (may carry parameters)
        body: Raw manifest body

    Returns:
        Media type, or an empty string when neither source has one
    """
    header_type = (content_type or "").split(";", 1)[0].strip()
    if header_type.startswith("application"):
        return header_type

    try:
        data = json.loads(body)
    except ValueError:
        return ""
    media_type = data.get("mediaType") if isinstance(data, dict) else None
    return media_type or ""


def is_manifest_list(media_type: str) -> bool:
    return media_type in MANIFEST_LIST_TYPES


def is_image_manifest(media_type: str) -> bool:
    return media_type in IMAGE_MANIFEST_TYPES


def parse_manifest(media_type: str, body: Union[bytes, str]) -> Union[ImageManifest, ManifestIndex]:
    """
    Parse a manifest body according to its media type.

    Raises:
        UnsupportedMediaType: If the media type is neither a manifest nor a list
        ContentError: If the body is not a valid manifest
    """
    if is_manifest_list(media_type):
        model = ManifestIndex
    elif is_image_manifest(media_type):
        model = ImageManifest
    else:
        raise UnsupportedMediaType(
            f"Unsupported manifest media type: {media_type or '(none)'}. "
            f"Expected one of: {', '.join(IMAGE_MANIFEST_TYPES + MANIFEST_LIST_TYPES)}"
        )

    data = _load_json(body)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ContentError(f"Invalid manifest: {e}") from e


def select_platform_manifest(index: ManifestIndex, architecture: str = "amd64",
                             os: str = "linux") -> Descriptor:
    """
    Pick the manifest-list entry for a platform.

    Falls back to the first entry, with a warning, when no entry matches.

    Raises:
        ContentError: If the list is empty or the chosen entry has no digest
    """
    if not index.manifests:
        raise ContentError("Manifest list contains no manifests")

    for entry in index.manifests:
        if entry.platform is not None and entry.platform.matches(architecture, os):
            selected = entry
            break
    else:
        logger.warning(
            f"Could not find a {os}/{architecture} manifest, using the first manifest in the list"
        )
        selected = index.manifests[0]

    if not selected.digest:
        raise ContentError("Selected manifest list entry has no digest")
    return selected


def layer_extension(media_type: Optional[str]) -> str:
    """
    File extension for a downloaded layer.

    Examples:
        >>> layer_extension("application/vnd.oci.image.layer.v1.tar+gzip")
        '.tar.gz'

        >>> layer_extension("application/vnd.oci.image.layer.v1.tar")
        '.tar'
    """
    media_type = media_type or ""
    if "tar+gzip" in media_type or "tar.gzip" in media_type:
        return ".tar.gz"
    if "tar" in media_type:
        return ".tar"
    logger.warning(f"Unusual layer media type '{media_type}', saving with .blob extension")
    return ".blob"


def digest_filename(digest: str) -> str:
    """``sha256:abc`` -> ``sha256_abc``, safe on every filesystem."""
    return digest.replace(":", "_")
