"""Hosting side: repository layout, project builds, and the published index."""

from .builder import IpakBuilder, ProjectBuilder
from .descriptor import default_author, find_repository_root, init_repository, load_descriptor
from .index import IndexBuilder

__all__ = [
    "IndexBuilder",
    "IpakBuilder",
    "ProjectBuilder",
    "default_author",
    "find_repository_root",
    "init_repository",
    "load_descriptor",
]
