"""
Image download without a Docker client.

Fetches the manifest for a tag (resolving manifest lists to one platform),
the image config blob and every layer blob, and lays them out on disk:

    {output}/manifest_list.json              only for multi-platform images
    {output}/image_manifest.json             or {digest}_manifest.json
    {output}/{config_digest}.json
    {output}/layers/{layer_digest}.tar.gz    .tar / .blob by media type

Downloads are strictly sequential. Content digests are not verified.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .errors import ContentError
from .manifest import (
    detect_media_type,
    digest_filename,
    is_manifest_list,
    layer_extension,
    parse_manifest,
    select_platform_manifest,
)
from .media_types import (
    ACCEPT_IMAGE_MANIFEST,
    IMAGE_MANIFEST_FILENAME,
    LAYERS_DIRNAME,
    MANIFEST_LIST_FILENAME,
)
from .models import ImageManifest
from .registry import RegistryClient

__all__ = ["DownloadResult", "download_image"]

logger = logging.getLogger(__name__)


@dataclass
class DownloadResult:
    """Paths written by download_image."""
    output_dir: Path
    manifest_path: Path
    config_path: Path
    manifest_list_path: Optional[Path] = None
    selected_digest: Optional[str] = None
    layer_paths: List[Path] = field(default_factory=list)


def download_image(client: RegistryClient, reference: str, output_dir: Path, *,
                   architecture: str = "amd64", os: str = "linux") -> DownloadResult:
    """
    Download manifest, config and layers of ``client.image_path:reference``.

    Args:
        client: Registry client bound to the image repository
        reference: Tag or digest
        output_dir: Directory receiving the files (created if missing)
        architecture: Platform architecture picked from manifest lists
        os: Platform OS picked from manifest lists

    Returns:
        DownloadResult describing what was written

    Raises:
        HTTPStatusError: If any fetch fails
        UnsupportedMediaType: If the manifest type is unknown
        ContentError: If the manifest lacks a config digest
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    logger.info(f"Image components will be saved to {output_dir.resolve()}")

    # 1. Manifest (or manifest list) for the tag
    response = client.get_manifest(reference)
    media_type = detect_media_type(response.content_type, response.content)
    logger.info(f"Initial manifest media type: {media_type}")
    parsed = parse_manifest(media_type, response.content)

    manifest_list_path = None
    selected_digest = None
    if is_manifest_list(media_type):
        logger.info("Detected a manifest list (multi-architecture image)")
        manifest_list_path = output_dir / MANIFEST_LIST_FILENAME
        manifest_list_path.write_bytes(response.content)

        entry = select_platform_manifest(parsed, architecture=architecture, os=os)
        selected_digest = entry.digest
        logger.info(f"Selected manifest digest from list: {selected_digest}")

        response = client.get_manifest(selected_digest, accept=ACCEPT_IMAGE_MANIFEST)
        media_type = detect_media_type(response.content_type, response.content)
        manifest = parse_manifest(media_type, response.content)
        if not isinstance(manifest, ImageManifest):
            raise ContentError(f"Manifest {selected_digest} is itself a manifest list")
        manifest_path = output_dir / f"{digest_filename(selected_digest)}_manifest.json"
    else:
        logger.info("Detected a single architecture image manifest")
        manifest = parsed
        manifest_path = output_dir / IMAGE_MANIFEST_FILENAME

    manifest_path.write_bytes(response.content)
    logger.info(f"Image manifest saved to {manifest_path}")

    # 2. Config blob
    if manifest.config is None or not manifest.config.digest:
        raise ContentError(f"Could not parse config digest from manifest {manifest_path}")
    config_digest = manifest.config.digest
    config_path = output_dir / f"{digest_filename(config_digest)}.json"
    logger.info(f"Downloading image config {config_digest}")
    client.get_blob(config_digest, config_path)

    # 3. Layers
    layers_dir = output_dir / LAYERS_DIRNAME
    layers_dir.mkdir(parents=True, exist_ok=True)
    logger.info(f"Downloading {len(manifest.layers)} layers to {layers_dir}")

    layer_paths: List[Path] = []
    for layer in manifest.layers:
        if not layer.digest:
            raise ContentError(f"Layer without digest in manifest {manifest_path}")
        layer_path = layers_dir / f"{digest_filename(layer.digest)}{layer_extension(layer.media_type)}"
        logger.info(f"Downloading layer {layer.digest} ({layer.media_type}, {layer.size} bytes)")
        client.get_blob(layer.digest, layer_path)
        layer_paths.append(layer_path)

    return DownloadResult(
        output_dir=output_dir,
        manifest_path=manifest_path,
        config_path=config_path,
        manifest_list_path=manifest_list_path,
        selected_digest=selected_digest,
        layer_paths=layer_paths,
    )
