"""
Tests for single-file extraction from layer archives.
"""
from __future__ import annotations

import io
import tarfile
import tempfile
from pathlib import Path

import pytest

from glregistry.errors import ContentError, FileNotInArchive, HTTPStatusError
from glregistry.extract import extract_file, extract_layer_file
from glregistry.registry import RegistryClient

from .helpers.oci_helpers import make_tar, seed_image

IMAGE = "g/p/i"


def _write_archive(tmp_path: Path, files, *, compress: bool = True, prefix: str = "", name: str = "layer.tar.gz") -> Path:
    archive = tmp_path / name
    archive.write_bytes(make_tar(files, compress=compress, prefix=prefix))
    return archive


def _write_entries(tmp_path: Path, entries, name: str = "layer.tar.gz") -> Path:
    """
    Write an archive from ordered (name, content, type, linkname) entries.

    Unlike make_tar this allows repeated names and link members.
    """
    archive = tmp_path / name
    with tarfile.open(archive, mode="w:gz") as out:
        for member_name, content, member_type, linkname in entries:
            info = tarfile.TarInfo(name=member_name)
            info.type = member_type
            info.linkname = linkname or ""
            if content is None:
                out.addfile(info)
            else:
                info.size = len(content)
                out.addfile(info, io.BytesIO(content))
    return archive


@pytest.fixture
def no_leftover_tempdirs(monkeypatch, tmp_path):
    """Route tempfile into a dedicated directory and assert it ends up empty."""
    scratch = tmp_path / "scratch"
    scratch.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(scratch))
    yield scratch
    assert list(scratch.iterdir()) == []


class TestExtractFile:
    """Test extract_file on local archives."""

    def test_gzip_layer(self, tmp_path):
        archive = _write_archive(tmp_path, {"etc/os-release": b"ID=alpine\n"})
        dest = tmp_path / "os-release.txt"

        result = extract_file(archive, "/etc/os-release", dest)

        assert result == dest
        assert dest.read_bytes() == b"ID=alpine\n"

    def test_plain_tar_layer(self, tmp_path):
        archive = _write_archive(tmp_path, {"app/config.yml": b"a: 1\n"}, compress=False, name="layer.tar")

        result = extract_file(archive, "app/config.yml", tmp_path / "config.yml")

        assert result.read_bytes() == b"a: 1\n"

    def test_untyped_blob_is_sniffed(self, tmp_path):
        """Test that .blob layers are opened by content, not extension."""
        archive = _write_archive(tmp_path, {"data.bin": b"\x00\x01"}, name="layer.blob")

        assert extract_file(archive, "data.bin", tmp_path / "out.bin").read_bytes() == b"\x00\x01"

    def test_dot_slash_member_names(self, tmp_path):
        """Test layers whose members are stored as ./path."""
        archive = _write_archive(tmp_path, {"etc/hostname": b"box\n"}, prefix="./")

        result = extract_file(archive, "/etc/hostname", tmp_path / "hostname")

        assert result.read_bytes() == b"box\n"

    def test_directory_destination_keeps_basename(self, tmp_path):
        archive = _write_archive(tmp_path, {"usr/share/doc/README": b"readme"})
        out_dir = tmp_path / "out"
        out_dir.mkdir()

        result = extract_file(archive, "usr/share/doc/README", out_dir)

        assert result == out_dir / "README"
        assert result.read_bytes() == b"readme"

    def test_missing_parent_directories_created(self, tmp_path):
        archive = _write_archive(tmp_path, {"f": b"x"})

        result = extract_file(archive, "f", tmp_path / "a" / "b" / "f.txt")

        assert result.read_bytes() == b"x"

    def test_overwrites_existing_destination(self, tmp_path):
        archive = _write_archive(tmp_path, {"f": b"new"})
        dest = tmp_path / "f"
        dest.write_bytes(b"old")

        extract_file(archive, "f", dest)

        assert dest.read_bytes() == b"new"

    def test_missing_member(self, tmp_path):
        archive = _write_archive(tmp_path, {"present": b"x"})

        with pytest.raises(FileNotInArchive) as exc_info:
            extract_file(archive, "/absent", tmp_path / "out")

        assert exc_info.value.member == "/absent"
        assert not (tmp_path / "out").exists()

    def test_hardlink_reads_target_data(self, tmp_path):
        """Test hardlinked binaries such as usr/bin/perl -> perl5.36.0."""
        archive = _write_entries(tmp_path, [
            ("usr/bin/perl5.36.0", b"\x7fELF perl", tarfile.REGTYPE, None),
            ("usr/bin/perl", None, tarfile.LNKTYPE, "usr/bin/perl5.36.0"),
        ])

        result = extract_file(archive, "/usr/bin/perl", tmp_path / "perl")

        assert result.read_bytes() == b"\x7fELF perl"

    def test_last_duplicate_entry_wins(self, tmp_path):
        """Test that a path rewritten later in the archive yields the newer content."""
        archive = _write_entries(tmp_path, [
            ("etc/motd", b"old", tarfile.REGTYPE, None),
            ("etc/issue", b"unrelated", tarfile.REGTYPE, None),
            ("./etc/motd", b"new", tarfile.REGTYPE, None),
        ])

        result = extract_file(archive, "etc/motd", tmp_path / "motd")

        assert result.read_bytes() == b"new"

    def test_symlink_rejected_with_target(self, tmp_path):
        archive = _write_entries(tmp_path, [
            ("bin/busybox", b"bb", tarfile.REGTYPE, None),
            ("bin/sh", None, tarfile.SYMTYPE, "busybox"),
        ])

        with pytest.raises(ContentError, match="is a symlink to 'busybox'"):
            extract_file(archive, "/bin/sh", tmp_path / "sh")

        assert not (tmp_path / "sh").exists()

    def test_directory_member_rejected(self, tmp_path):
        archive = _write_entries(tmp_path, [("etc", None, tarfile.DIRTYPE, None)])

        with pytest.raises(ContentError, match="not a regular file"):
            extract_file(archive, "etc", tmp_path / "out")

    @pytest.mark.parametrize("member", ["../etc/passwd", "a/../../b", "", "/"])
    def test_unsafe_paths_rejected(self, tmp_path, member):
        archive = _write_archive(tmp_path, {"a": b"x"})

        with pytest.raises(ContentError, match="unsafe path"):
            extract_file(archive, member, tmp_path / "out")

    def test_missing_archive(self, tmp_path):
        with pytest.raises(ContentError, match="Archive not found"):
            extract_file(tmp_path / "nope.tar.gz", "f", tmp_path / "out")

    def test_corrupt_archive(self, tmp_path):
        archive = tmp_path / "layer.tar.gz"
        archive.write_bytes(b"definitely not a tarball")

        with pytest.raises(ContentError, match="Could not read archive"):
            extract_file(archive, "f", tmp_path / "out")

    def test_temp_directory_removed_on_success(self, tmp_path, no_leftover_tempdirs):
        archive = _write_archive(tmp_path, {"f": b"x"})

        extract_file(archive, "f", tmp_path / "out")

    def test_temp_directory_removed_on_failure(self, tmp_path, no_leftover_tempdirs):
        archive = _write_archive(tmp_path, {"f": b"x"})

        with pytest.raises(FileNotInArchive):
            extract_file(archive, "g", tmp_path / "out")


class TestExtractLayerFile:
    """Test extraction straight from a registry layer."""

    @pytest.fixture
    def registry_client(self, http, settings, credential):
        return RegistryClient.connect(http, settings, "example.com", IMAGE, credential)

    def test_extract_from_registry_layer(self, gitlab, registry_client, tmp_path, no_leftover_tempdirs):
        seeded = seed_image(gitlab, IMAGE, "latest", [{"etc/os-release": b"ID=test\n"}])
        digest = next(iter(seeded["layers"]))
        out_dir = tmp_path / "out"
        out_dir.mkdir()

        result = extract_layer_file(registry_client, digest, "/etc/os-release", out_dir)

        assert result == out_dir / "os-release"
        assert result.read_bytes() == b"ID=test\n"
        assert gitlab.requests_to(f"/blobs/{digest}")[0].headers["Authorization"] == "Bearer jwt-1"

    def test_unknown_digest(self, registry_client, tmp_path, no_leftover_tempdirs):
        with pytest.raises(HTTPStatusError) as exc_info:
            extract_layer_file(registry_client, "sha256:" + "0" * 64, "f", tmp_path / "out")

        assert exc_info.value.status_code == 404

    def test_member_missing_from_layer(self, gitlab, registry_client, tmp_path, no_leftover_tempdirs):
        seeded = seed_image(gitlab, IMAGE, "latest", [{"a": b"a"}])

        with pytest.raises(FileNotInArchive):
            extract_layer_file(registry_client, next(iter(seeded["layers"])), "b", tmp_path / "out")
