"""Catalog models and the native ``repo.yaml`` manifest format."""

from datetime import datetime

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ipmrepo.errors import MalformedInput
from ipmrepo.models.package import Maintainer, PackageRecord
from ipmrepo.utils import utcnow


class CatalogEntry(BaseModel):
    """A package record plus where to download it from.

    ``download_url`` is absolute once an entry has left a source adapter; the
    manifest document may hold a source-relative ``url`` instead.
    """

    model_config = ConfigDict(populate_by_name=True)

    last_modified: datetime = Field(default_factory=utcnow)
    record: PackageRecord = Field(alias="info")
    download_url: str = Field(alias="url")

    @property
    def name(self) -> str:
        return self.record.name


class Catalog(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    author: Maintainer = Field(default_factory=Maintainer)
    last_modified: datetime = Field(default_factory=utcnow)
    entries: list[CatalogEntry] = Field(default_factory=list, alias="packages")


def load_manifest(text: str) -> Catalog:
    """Parse a native manifest document.

    Raises:
        MalformedInput: if the text is not YAML or does not describe a catalog
    """
    try:
        data = yaml.safe_load(text)
        return Catalog.model_validate(data if data is not None else {})
    except (yaml.YAMLError, ValidationError) as e:
        raise MalformedInput(f"Failed to parse manifest: {e}") from e


def dump_manifest(catalog: Catalog) -> str:
    data = catalog.model_dump(mode="json", by_alias=True)
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
