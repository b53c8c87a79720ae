"""The ``ipm/repo.yaml`` descriptor that marks a repository root."""

import getpass
import logging
import socket
from pathlib import Path

import yaml
from pydantic import ValidationError

from ipmrepo.constants import DESCRIPTOR_PATH
from ipmrepo.errors import MalformedInput, NotFound
from ipmrepo.models import Maintainer

logger = logging.getLogger(__name__)

PROJECTS_DIR = "projects"
OUT_DIR = "out"


def default_author() -> Maintainer:
    """The current user, addressed at this host."""
    user = getpass.getuser()
    return Maintainer(name=user, email=f"{user}@{socket.gethostname()}")


def init_repository(root: Path, author: Maintainer | None = None) -> Path:
    """Create the descriptor and the projects directory under ``root``.

    Returns:
        The path of the written descriptor
    """
    author = author or default_author()
    descriptor = root / DESCRIPTOR_PATH
    descriptor.parent.mkdir(parents=True, exist_ok=True)
    descriptor.write_text(yaml.safe_dump(author.model_dump(), sort_keys=False), encoding="utf-8")
    (root / PROJECTS_DIR).mkdir(parents=True, exist_ok=True)
    logger.info(f"Initialized repository at {root} for {author}")
    return descriptor


def find_repository_root(start: Path) -> Path:
    """Walk up from ``start`` to the first directory holding ``ipm/repo.yaml``.

    Raises:
        NotFound: if no ancestor holds a descriptor
    """
    start = start.resolve()
    for candidate in (start, *start.parents):
        if (candidate / DESCRIPTOR_PATH).is_file():
            return candidate
        logger.debug(f"No {DESCRIPTOR_PATH} in {candidate}")
    raise NotFound(f"{DESCRIPTOR_PATH} not found in {start} or any parent directory")


def load_descriptor(root: Path) -> Maintainer:
    """Read the repository author from the descriptor under ``root``.

    Raises:
        NotFound: if the descriptor does not exist
        MalformedInput: if it cannot be parsed
    """
    path = root / DESCRIPTOR_PATH
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise NotFound(f"Repository descriptor {path} does not exist") from e
    try:
        return Maintainer.model_validate(yaml.safe_load(text) or {})
    except (yaml.YAMLError, ValidationError) as e:
        raise MalformedInput(f"Failed to parse {path}: {e}") from e
