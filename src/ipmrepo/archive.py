"""Tar archive extraction for the compression variants found inside .deb files."""

import logging
import tarfile
from enum import Enum
from pathlib import Path

import zstandard

from ipmrepo.errors import MalformedInput

logger = logging.getLogger(__name__)


class ArchiveKind(str, Enum):
    TAR = "tar"
    TAR_GZ = "tar.gz"
    TAR_XZ = "tar.xz"
    TAR_BZ2 = "tar.bz2"
    TAR_ZST = "tar.zst"

    @property
    def open_mode(self) -> str:
        return _OPEN_MODES[self]


_OPEN_MODES = {
    ArchiveKind.TAR: "r:",
    ArchiveKind.TAR_GZ: "r:gz",
    ArchiveKind.TAR_XZ: "r:xz",
    ArchiveKind.TAR_BZ2: "r:bz2",
    # zstd frames are decompressed as a stream and read as a plain tar stream
    ArchiveKind.TAR_ZST: "r|",
}

_SUFFIXES = {
    ".tar": ArchiveKind.TAR,
    ".tar.gz": ArchiveKind.TAR_GZ,
    ".tgz": ArchiveKind.TAR_GZ,
    ".tar.xz": ArchiveKind.TAR_XZ,
    ".tar.bz2": ArchiveKind.TAR_BZ2,
    ".tar.zst": ArchiveKind.TAR_ZST,
}


def archive_kind(path: Path) -> ArchiveKind:
    """Determine the archive kind from a file name.

    Examples:
        >>> archive_kind(Path("data.tar.xz"))
        <ArchiveKind.TAR_XZ: 'tar.xz'>

    Raises:
        MalformedInput: if the suffix is not a supported tar variant
    """
    name = path.name
    for suffix, kind in _SUFFIXES.items():
        if name.endswith(suffix):
            return kind
    raise MalformedInput(f"Unsupported archive format: {name}")


def extract(path: Path, kind: ArchiveKind, dest: Path) -> Path:
    """Extract ``path`` into ``dest`` and return ``dest``.

    Members that would land outside ``dest`` are rejected by the ``tar``
    extraction filter. Existing files at the same relative path are overwritten.

    Raises:
        tarfile.TarError: if the archive is corrupt
        zstandard.ZstdError: if a zstd stream is corrupt
        OSError: on filesystem errors
    """
    dest.mkdir(parents=True, exist_ok=True)
    if kind is ArchiveKind.TAR_ZST:
        with path.open("rb") as fh, zstandard.ZstdDecompressor().stream_reader(fh) as reader:
            with tarfile.open(fileobj=reader, mode=kind.open_mode) as tar:
                tar.extractall(dest, filter="tar")
    else:
        with tarfile.open(path, mode=kind.open_mode) as tar:
            tar.extractall(dest, filter="tar")
    logger.debug(f"Extracted {path} ({kind.value}) into {dest}")
    return dest
