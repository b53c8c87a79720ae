"""Version parsing and the constraint algebra used by package relations.

Version values are ``debian.debian_support.Version`` objects, so epochs,
revisions and ``~`` sort the way dpkg sorts them, and ``str()`` gives back
the exact spelling that was parsed.
"""

import re
from enum import Enum
from typing import Annotated, Any

from debian.debian_support import Version
from pydantic import BaseModel, ConfigDict, PlainSerializer, PlainValidator, model_serializer, model_validator

from ipmrepo.errors import MalformedConstraint, MalformedInput

_WILDCARD_RE = re.compile(r"^(?P<major>\d+)(?:\.(?P<minor>\d+|x))?(?:\.x)+$")


def parse_version(text: str) -> Version:
    """Parse a Debian version string.

    Examples:
        >>> str(parse_version("1:2.36-9+deb12u4"))
        '1:2.36-9+deb12u4'
        >>> parse_version("1.0~rc1") < parse_version("1.0")
        True
    """
    raw = text.strip() if isinstance(text, str) else ""
    if not raw:
        raise MalformedInput("empty version string")
    try:
        return Version(raw)
    except ValueError as e:
        raise MalformedInput(f"Failed to parse version '{text}'") from e


def _coerce_version(value: Any) -> Version:
    if isinstance(value, Version):
        return value
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str):
        raise ValueError(f"expected a version string, got {type(value).__name__}")
    try:
        return parse_version(value)
    except MalformedInput as e:
        raise ValueError(str(e)) from e


VersionField = Annotated[
    Version,
    PlainValidator(_coerce_version),
    PlainSerializer(str, return_type=str, when_used="json"),
]


class ConstraintKind(str, Enum):
    EXACT = "exact"
    GREATER_THAN = "greater-than"
    GREATER_OR_EQUAL = "greater-or-equal"
    LESS_THAN = "less-than"
    LESS_OR_EQUAL = "less-or-equal"
    WILDCARD_MINOR = "wildcard-minor"
    WILDCARD_PATCH = "wildcard-patch"
    ANY = "any"


# longest operators first so ">=" is not read as ">"
_OPERATORS: list[tuple[str, ConstraintKind]] = [
    (">=", ConstraintKind.GREATER_OR_EQUAL),
    ("<=", ConstraintKind.LESS_OR_EQUAL),
    (">>", ConstraintKind.GREATER_THAN),
    ("<<", ConstraintKind.LESS_THAN),
    (">", ConstraintKind.GREATER_THAN),
    ("<", ConstraintKind.LESS_THAN),
    ("=", ConstraintKind.EXACT),
]

_SYMBOLS = {
    ConstraintKind.EXACT: "=",
    ConstraintKind.GREATER_THAN: ">",
    ConstraintKind.GREATER_OR_EQUAL: ">=",
    ConstraintKind.LESS_THAN: "<",
    ConstraintKind.LESS_OR_EQUAL: "<=",
}


class VersionConstraint(BaseModel):
    """A single version requirement such as ``>=1.0``, ``1.2.x`` or ``*``.

    In documents a constraint is written as its string form; ``parse`` accepts
    the same strings plus the Debian ``>>``/``<<`` operators and spaces after
    the operator.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: ConstraintKind = ConstraintKind.ANY
    version: VersionField | None = None
    major: int | None = None
    minor: int | None = None

    @classmethod
    def any(cls) -> "VersionConstraint":
        return cls(kind=ConstraintKind.ANY)

    @classmethod
    def parse(cls, text: str) -> "VersionConstraint":
        raw = text.strip()
        if raw in {"", "*"}:
            return cls.any()

        if match := _WILDCARD_RE.match(raw):
            major = int(match["major"])
            minor = match["minor"]
            if minor is None or minor == "x":
                return cls(kind=ConstraintKind.WILDCARD_MINOR, major=major)
            return cls(kind=ConstraintKind.WILDCARD_PATCH, major=major, minor=int(minor))

        kind = ConstraintKind.EXACT
        for symbol, op_kind in _OPERATORS:
            if raw.startswith(symbol):
                kind = op_kind
                raw = raw[len(symbol) :].strip()
                break

        if not raw:
            raise MalformedConstraint(f"missing version in constraint '{text}'")
        try:
            version = parse_version(raw)
        except MalformedInput as e:
            raise MalformedConstraint(f"Failed to parse version range '{text}': {e}") from e
        return cls(kind=kind, version=version)

    @property
    def operator(self) -> str | None:
        """The comparison operator, or None for wildcard and any constraints."""
        return _SYMBOLS.get(self.kind)

    def __str__(self) -> str:
        match self.kind:
            case ConstraintKind.ANY:
                return "*"
            case ConstraintKind.WILDCARD_MINOR:
                return f"{self.major}.x.x"
            case ConstraintKind.WILDCARD_PATCH:
                return f"{self.major}.{self.minor}.x"
            case _:
                return f"{self.operator}{self.version}"

    @model_validator(mode="before")
    @classmethod
    def _from_string(cls, data: Any) -> Any:
        if isinstance(data, str):
            try:
                parsed = cls.parse(data)
            except MalformedInput as e:
                raise ValueError(str(e)) from e
            return dict(parsed)
        return data

    @model_serializer
    def _to_string(self) -> str:
        return str(self)
