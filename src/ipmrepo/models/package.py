"""Ecosystem-independent package metadata."""

from debian.debian_support import Version
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ipmrepo.versions import VersionConstraint, VersionField


class Maintainer(BaseModel):
    """A person or team, used both for package maintainers and catalog authors."""

    name: str = ""
    email: str = ""

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>" if self.email else self.name


class PackageIdentity(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    version: VersionField | None = None

    def __str__(self) -> str:
        return f"{self.name} ({self.version})" if self.version is not None else self.name


class PackageRelation(BaseModel):
    """One named package plus the versions of it that are acceptable."""

    name: str
    constraint: VersionConstraint = Field(default_factory=VersionConstraint.any)


# any one relation in a group satisfies it
DependencyGroup = list[PackageRelation]


class RelationSet(BaseModel):
    depends: list[DependencyGroup] = Field(default_factory=list)
    recommends: list[DependencyGroup] = Field(default_factory=list)
    suggests: list[DependencyGroup] = Field(default_factory=list)
    conflicts: list[PackageRelation] = Field(default_factory=list)
    replaces: list[PackageRelation] = Field(default_factory=list)
    provides: list[PackageIdentity] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not any(
            (self.depends, self.recommends, self.suggests, self.conflicts, self.replaces, self.provides)
        )


class PackageRecord(BaseModel):
    """Normalized metadata for a single package.

    Control fields that have no dedicated attribute are kept verbatim in
    ``extra`` so converting a package never loses information.
    """

    identity: PackageIdentity
    maintainer: Maintainer = Field(default_factory=Maintainer)
    description: str = ""
    architectures: list[str] = Field(default_factory=list)
    relations: RelationSet = Field(default_factory=RelationSet)
    extra: dict[str, str] = Field(default_factory=dict)

    @field_validator("architectures")
    @classmethod
    def _dedupe_architectures(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(arch for arch in value if arch))

    @property
    def name(self) -> str:
        return self.identity.name

    @property
    def version(self) -> Version | None:
        return self.identity.version
