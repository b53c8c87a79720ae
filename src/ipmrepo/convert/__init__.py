"""Conversion of unpacked Debian binary packages into native projects.

The pipeline works on an explicit root directory holding the members of an
already unpacked ``.deb`` (``debian-binary``, ``control.tar.*``, ``data.tar.*``)
and turns it into a native project::

    root/
        control/          # extracted control.tar.*
        data/             # extracted data.tar.*
        ipak/project.yaml
        ipak/scripts/{install,remove,purge}.sh
"""

import logging
import tarfile
from collections.abc import Callable
from enum import Enum
from importlib import resources
from pathlib import Path

import zstandard

from ipmrepo.archive import ArchiveKind, archive_kind, extract
from ipmrepo.control import build_record, parse_paragraphs
from ipmrepo.errors import Fatal, MalformedInput, NotFound
from ipmrepo.models import PackageRecord, write_project
from ipmrepo.models.project import PROJECT_DIR

logger = logging.getLogger(__name__)

Extractor = Callable[[Path, ArchiveKind, Path], Path]

DEBIAN_SCRIPTS = ("install.sh", "remove.sh", "purge.sh")


class PackageKind(str, Enum):
    DEBIAN = "debian"
    UNKNOWN = "unknown"


class IngestState(str, Enum):
    DETECT = "detect"
    EXTRACT_OUTER = "extract-outer"
    PARSE_CONTROL = "parse-control"
    EMIT_NATIVE = "emit-native"
    DONE = "done"
    FAILED = "failed"


def _has_member(directory: Path, prefix: str) -> bool:
    return any(entry.name.startswith(prefix) for entry in directory.iterdir())


def detect_package_kind(directory: Path) -> PackageKind:
    """Classify an unpacked package directory.

    A directory is a Debian binary package when it holds a regular file named
    ``debian-binary`` and at least one ``control.tar.*`` and one ``data.tar.*``
    entry.
    """
    if not directory.is_dir():
        return PackageKind.UNKNOWN
    if (
        (directory / "debian-binary").is_file()
        and _has_member(directory, "control.tar.")
        and _has_member(directory, "data.tar.")
    ):
        return PackageKind.DEBIAN
    return PackageKind.UNKNOWN


def script_template(name: str) -> str:
    template = resources.files(__package__).joinpath("templates", "deb", "scripts", name)
    return template.read_text(encoding="utf-8")


class DebianIngestPipeline:
    """Converts one unpacked Debian package in ``root`` into a native project.

    Any extraction or parsing failure aborts the run with ``Fatal``; partially
    written output is left in place for the caller to clean up.
    """

    def __init__(self, root: Path, extractor: Extractor = extract):
        self.root = root
        self.extractor = extractor
        self.state = IngestState.DETECT
        self.failure: Exception | None = None
        self.record: PackageRecord | None = None

    @property
    def data_dir(self) -> Path:
        return self.root / "data"

    @property
    def control_dir(self) -> Path:
        return self.root / "control"

    def run(self) -> PackageRecord:
        """Run every step in order and return the converted package record.

        Raises:
            NotFound: if ``root`` is not an unpacked Debian binary package
            Fatal: if reading the directory, extraction, control parsing or writing the output fails
        """
        try:
            self._detect()
            self.state = IngestState.EXTRACT_OUTER
            self._extract_outer()
            self.state = IngestState.PARSE_CONTROL
            self.record = self._parse_control()
            self.state = IngestState.EMIT_NATIVE
            self._emit_native(self.record)
        except (NotFound, Fatal) as e:
            self.failure = e
            self.state = IngestState.FAILED
            raise
        self.state = IngestState.DONE
        logger.info(f"Converted {self.record.name} {self.record.version} in {self.root}")
        return self.record

    def _fatal(self, step: IngestState, e: Exception) -> Fatal:
        return Fatal(step.value, self.root, str(e))

    def _detect(self) -> None:
        try:
            kind = detect_package_kind(self.root)
        except OSError as e:
            raise self._fatal(IngestState.DETECT, e) from e
        if kind is not PackageKind.DEBIAN:
            raise NotFound(f"{self.root} is not an unpacked Debian binary package")

    def _extract_outer(self) -> None:
        try:
            self.data_dir.mkdir(exist_ok=True)
            self.control_dir.mkdir(exist_ok=True)
            for member in sorted(self.root.iterdir()):
                if member.name.startswith("data.tar."):
                    dest = self.data_dir
                elif member.name.startswith("control.tar."):
                    dest = self.control_dir
                else:
                    continue
                # later members overwrite earlier ones at the same relative path
                self.extractor(member, archive_kind(member), dest)
                member.unlink()
                logger.debug(f"Extracted {member.name} into {dest.name}/")
        except (OSError, tarfile.TarError, zstandard.ZstdError, MalformedInput) as e:
            raise self._fatal(IngestState.EXTRACT_OUTER, e) from e

    def _parse_control(self) -> PackageRecord:
        try:
            text = (self.control_dir / "control").read_text(encoding="utf-8")
            paragraphs = parse_paragraphs(text)
            if not paragraphs:
                raise MalformedInput("control file contains no paragraph")
            if len(paragraphs) > 1:
                logger.warning(f"Ignoring {len(paragraphs) - 1} extra paragraph(s) in control file")
            return build_record(paragraphs[0])
        except (OSError, UnicodeDecodeError, MalformedInput) as e:
            raise self._fatal(IngestState.PARSE_CONTROL, e) from e

    def _emit_native(self, record: PackageRecord) -> None:
        try:
            write_project(self.root, record)
            scripts_dir = self.root / PROJECT_DIR / "scripts"
            scripts_dir.mkdir(parents=True, exist_ok=True)
            for name in DEBIAN_SCRIPTS:
                path = scripts_dir / name
                path.write_text(script_template(name), encoding="utf-8")
                path.chmod(0o755)
        except OSError as e:
            raise self._fatal(IngestState.EMIT_NATIVE, e) from e


def convert(root: Path, extractor: Extractor = extract) -> PackageRecord:
    """Detect the package kind of ``root`` and convert it.

    Raises:
        NotFound: for anything other than an unpacked Debian binary package
        Fatal: if the conversion fails part way
    """
    return DebianIngestPipeline(root, extractor=extractor).run()
