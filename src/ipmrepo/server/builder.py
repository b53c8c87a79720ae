"""The build tool that turns a project directory into a package artifact."""

import logging
import subprocess
from pathlib import Path
from typing import Protocol

from ipmrepo.constants import IPAK_COMMAND
from ipmrepo.errors import BuildError, MalformedInput
from ipmrepo.models import PackageRecord, read_project
from ipmrepo.models.project import PROJECT_DIR

logger = logging.getLogger(__name__)

PACKAGE_OUTPUT_DIR = Path(PROJECT_DIR) / "package"


class ProjectBuilder(Protocol):
    def build(self, project_dir: Path, release: bool = True) -> None: ...

    def package(self, project_dir: Path) -> None: ...

    def metadata(self, project_dir: Path) -> PackageRecord: ...


class IpakBuilder:
    """Runs the ``ipak`` command line tool inside each project directory."""

    def __init__(self, command: str = IPAK_COMMAND, timeout: float | None = None):
        self.command = command
        self.timeout = timeout

    def _run(self, project_dir: Path, *args: str) -> None:
        cmd = [self.command, "project", *args]
        logger.debug(f"Running {' '.join(cmd)} in {project_dir}")
        try:
            proc = subprocess.run(
                cmd,
                cwd=project_dir,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise BuildError(f"Failed to run {self.command}: {e}", command=cmd) from e
        if proc.returncode != 0:
            raise BuildError(
                f"{' '.join(cmd)} exited with status {proc.returncode}",
                command=cmd,
                stderr=proc.stderr,
            )

    def build(self, project_dir: Path, release: bool = True) -> None:
        self._run(project_dir, "build", *(["--release"] if release else []))

    def package(self, project_dir: Path) -> None:
        self._run(project_dir, "package")

    def metadata(self, project_dir: Path) -> PackageRecord:
        try:
            return read_project(project_dir)
        except (OSError, MalformedInput) as e:
            raise BuildError(f"Failed to read project metadata in {project_dir}: {e}") from e
