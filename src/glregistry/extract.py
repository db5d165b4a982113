"""
Single-file extraction from image layer archives.

Layers are tar archives (usually gzip-compressed). Extraction happens in a
scoped temporary directory that is removed on every exit path; only the
requested file is moved to its destination.
"""
from __future__ import annotations

import logging
import shutil
import tarfile
import tempfile
from pathlib import Path

from .errors import ContentError, FileNotInArchive
from .path_safety import normalize_member_name, safe_relpath
from .registry import RegistryClient

__all__ = ["extract_file", "extract_layer_file"]

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1 MiB


def _resolve_destination(destination: Path, member_path: str) -> Path:
    """A directory destination receives the member's basename."""
    if destination.is_dir():
        return destination / Path(member_path).name
    return destination


def _extract_to(archive_path: Path, member_path: str, workdir: Path) -> Path:
    wanted = safe_relpath(member_path)
    try:
        with tarfile.open(archive_path, mode="r:*") as archive:
            # Later entries override earlier ones with the same name, as with tar -x
            match = None
            for member in archive:
                if normalize_member_name(member.name) == wanted:
                    match = member
            if match is None:
                raise FileNotInArchive(member_path, str(archive_path))

            if match.issym():
                raise ContentError(
                    f"'{member_path}' in {archive_path} is a symlink to '{match.linkname}'; "
                    "extract the link target instead"
                )
            # Hardlinks are read through to their target's data
            if not (match.isfile() or match.islnk()):
                raise ContentError(f"'{member_path}' in {archive_path} is not a regular file")

            source = archive.extractfile(match)
            if source is None:
                raise ContentError(f"Could not read '{member_path}' from {archive_path}")

            staged = workdir / Path(wanted).name
            with source, open(staged, "wb") as out:
                shutil.copyfileobj(source, out, CHUNK_SIZE)
            return staged
    except (tarfile.TarError, EOFError) as e:
        raise ContentError(f"Could not read archive {archive_path}: {e}") from e


def extract_file(archive_path: Path, member_path: str, destination: Path) -> Path:
    """
    Extract one file from a (possibly compressed) tar archive.

    Args:
        archive_path: Layer archive (.tar, .tar.gz or an untyped .blob)
        member_path: Path inside the archive; leading ``/`` or ``./`` is ignored
        destination: Target file, or an existing directory

    Returns:
        Path of the extracted file

    Raises:
        FileNotInArchive: If no member matches
        ContentError: If the archive is unreadable, the member is not a
            regular file, or the requested path is unsafe
    """
    archive_path = Path(archive_path)
    if not archive_path.is_file():
        raise ContentError(f"Archive not found: {archive_path}")
    try:
        safe_relpath(member_path)
    except ValueError as e:
        raise ContentError(str(e)) from e

    target = _resolve_destination(Path(destination), member_path)
    with tempfile.TemporaryDirectory(prefix="glregistry-extract-") as tmp:
        staged = _extract_to(archive_path, member_path, Path(tmp))
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(staged), str(target))

    logger.info(f"Extracted '{member_path}' from {archive_path} to {target}")
    return target


def extract_layer_file(client: RegistryClient, digest: str, member_path: str, destination: Path) -> Path:
    """
    Download a layer blob and extract one file from it.

    The blob lives only in a temporary directory removed on every exit path.

    Raises:
        HTTPStatusError: If the blob fetch fails
        FileNotInArchive: If the layer does not contain the file
    """
    with tempfile.TemporaryDirectory(prefix="glregistry-layer-") as tmp:
        blob_path = Path(tmp) / "layer.blob"
        logger.info(f"Downloading layer {digest} from {client.image_path}")
        client.get_blob(digest, blob_path)
        return extract_file(blob_path, member_path, destination)
