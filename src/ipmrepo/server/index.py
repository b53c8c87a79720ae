"""Builds every managed project and publishes a native manifest for them."""

import logging
import shutil
from pathlib import Path

from ipmrepo.constants import MANIFEST_NAME, NATIVE_PACKAGE_SUFFIX
from ipmrepo.errors import BuildError, Fatal, MalformedInput, NotFound
from ipmrepo.models import Catalog, CatalogEntry, Maintainer, dump_manifest
from ipmrepo.utils import utcnow

from .builder import PACKAGE_OUTPUT_DIR, IpakBuilder, ProjectBuilder
from .descriptor import OUT_DIR, PROJECTS_DIR, load_descriptor

logger = logging.getLogger(__name__)

PACKAGES_DIR = "packages"


class IndexBuilder:
    """Builds projects into ``out/packages`` and writes ``out/repo.yaml``.

    A failure to build or package any project aborts the run before a manifest
    is written. A failure to read one project's metadata only drops that
    project from the manifest.
    """

    def __init__(self, projects_dir: Path, out_dir: Path, author: Maintainer, builder: ProjectBuilder):
        self.projects_dir = projects_dir
        self.out_dir = out_dir
        self.author = author
        self.builder = builder

    @classmethod
    def for_repository(cls, root: Path, builder: ProjectBuilder | None = None) -> "IndexBuilder":
        return cls(
            projects_dir=root / PROJECTS_DIR,
            out_dir=root / OUT_DIR,
            author=load_descriptor(root),
            builder=builder or IpakBuilder(),
        )

    @property
    def packages_dir(self) -> Path:
        return self.out_dir / PACKAGES_DIR

    @property
    def manifest_path(self) -> Path:
        return self.out_dir / MANIFEST_NAME

    def projects(self) -> list[Path]:
        if not self.projects_dir.is_dir():
            raise NotFound(f"Projects directory {self.projects_dir} does not exist")
        return sorted(path for path in self.projects_dir.iterdir() if path.is_dir())

    def _reset_output(self) -> None:
        if self.out_dir.exists():
            shutil.rmtree(self.out_dir)
        self.out_dir.mkdir(parents=True)

    def _collect_artifacts(self, project_dir: Path) -> list[Path]:
        source = project_dir / PACKAGE_OUTPUT_DIR
        copied: list[Path] = []
        if not source.is_dir():
            logger.warning(f"{project_dir.name} produced no package output in {source}")
            return copied
        self.packages_dir.mkdir(parents=True, exist_ok=True)
        for artifact in sorted(source.iterdir()):
            if artifact.is_file():
                copied.append(Path(shutil.copy2(artifact, self.packages_dir / artifact.name)))
        return copied

    def build_all(self, projects: list[Path]) -> None:
        """Build and package every project, stopping at the first failure.

        Raises:
            Fatal: naming the failing step and project directory
        """
        for project_dir in projects:
            logger.info(f"Building {project_dir.name}")
            try:
                self.builder.build(project_dir, release=True)
            except (BuildError, OSError) as e:
                raise Fatal("build", project_dir, str(e)) from e
            try:
                self.builder.package(project_dir)
            except (BuildError, OSError) as e:
                raise Fatal("package", project_dir, str(e)) from e
            try:
                artifacts = self._collect_artifacts(project_dir)
            except OSError as e:
                raise Fatal("copy", project_dir, str(e)) from e
            logger.debug(f"Copied {len(artifacts)} artifact(s) from {project_dir.name}")

    def collect_metadata(self, projects: list[Path]) -> list[CatalogEntry]:
        last_modified = utcnow()
        entries: list[CatalogEntry] = []
        for project_dir in projects:
            try:
                record = self.builder.metadata(project_dir)
            except (BuildError, MalformedInput, OSError) as e:
                logger.warning(f"Failed to get metadata for {project_dir.name}: {e}")
                continue
            entries.append(
                CatalogEntry(
                    record=record,
                    download_url=f"{PACKAGES_DIR}/{record.name}-{record.version}{NATIVE_PACKAGE_SUFFIX}",
                    last_modified=last_modified,
                )
            )
        return entries

    def run(self) -> Catalog:
        """Rebuild the output directory from scratch and return the published catalog.

        Raises:
            NotFound: if the projects directory is missing
            Fatal: if any project fails to build or package, or the output cannot be written
        """
        projects = self.projects()
        try:
            self._reset_output()
        except OSError as e:
            raise Fatal("prepare", self.out_dir, str(e)) from e

        self.build_all(projects)
        catalog = Catalog(author=self.author, last_modified=utcnow(), entries=self.collect_metadata(projects))

        try:
            self.manifest_path.write_text(dump_manifest(catalog), encoding="utf-8")
        except OSError as e:
            raise Fatal("write-manifest", self.out_dir, str(e)) from e
        logger.info(f"Wrote {len(catalog.entries)} of {len(projects)} project(s) to {self.manifest_path}")
        return catalog
