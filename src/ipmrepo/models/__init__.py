"""Expose catalog and package models."""

from .catalog import Catalog, CatalogEntry, dump_manifest, load_manifest
from .package import DependencyGroup, Maintainer, PackageIdentity, PackageRecord, PackageRelation, RelationSet
from .project import PROJECT_FILE, load_project, read_project, write_project
from .source import AptSource, NativeSource, RepositorySource

__all__ = [
    "PROJECT_FILE",
    "AptSource",
    "Catalog",
    "CatalogEntry",
    "DependencyGroup",
    "Maintainer",
    "NativeSource",
    "PackageIdentity",
    "PackageRecord",
    "PackageRelation",
    "RelationSet",
    "RepositorySource",
    "dump_manifest",
    "load_manifest",
    "load_project",
    "read_project",
    "write_project",
]
