"""The ``ipak/project.yaml`` descriptor of a native project."""

from pathlib import Path

import yaml
from pydantic import ValidationError

from ipmrepo.errors import MalformedInput
from ipmrepo.models.package import PackageRecord

PROJECT_DIR = "ipak"
PROJECT_FILE = Path(PROJECT_DIR) / "project.yaml"


def dump_project(record: PackageRecord) -> str:
    return yaml.safe_dump(record.model_dump(mode="json"), sort_keys=False, allow_unicode=True)


def load_project(text: str) -> PackageRecord:
    """Parse a project descriptor.

    Raises:
        MalformedInput: if the text is not YAML or does not describe a package
    """
    try:
        return PackageRecord.model_validate(yaml.safe_load(text))
    except (yaml.YAMLError, ValidationError) as e:
        raise MalformedInput(f"Failed to parse project descriptor: {e}") from e


def write_project(project_dir: Path, record: PackageRecord) -> Path:
    path = project_dir / PROJECT_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dump_project(record), encoding="utf-8")
    return path


def read_project(project_dir: Path) -> PackageRecord:
    return load_project((project_dir / PROJECT_FILE).read_text(encoding="utf-8"))
