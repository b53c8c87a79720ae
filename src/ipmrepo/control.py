"""Parser for Debian control-file grammar and relationship fields.

Control text is a sequence of paragraphs separated by blank lines. Each field
starts at column 0 as ``Key: value``; lines starting with whitespace continue
the previous field and are appended to it, trimmed, after a newline.
"""

import re
from collections.abc import Iterator, Mapping, Sequence

from debian import deb822

from ipmrepo.errors import MalformedConstraint, MalformedInput, MissingField
from ipmrepo.models.package import (
    DependencyGroup,
    Maintainer,
    PackageIdentity,
    PackageRecord,
    PackageRelation,
    RelationSet,
)
from ipmrepo.versions import ConstraintKind, VersionConstraint, parse_version

REQUIRED_FIELDS = ("Package", "Version", "Maintainer")

# fields with a dedicated PackageRecord attribute; everything else goes to `extra`
MODELED_FIELDS = frozenset(
    {
        "Package",
        "Version",
        "Maintainer",
        "Description",
        "Architecture",
        "Depends",
        "Recommends",
        "Suggests",
        "Conflicts",
        "Replaces",
        "Provides",
    }
)

_RELATION_RE = re.compile(
    r"""
    ^(?P<name>[^\s()\[\]<>|,]+)            # package name, may carry an :arch qualifier
    \s*(?:\((?P<constraint>[^)]*)\))?      # optional (OP version)
    \s*(?:\[[^\]]*\])?                     # architecture restriction, ignored
    \s*(?:<[^>]*>\s*)*$                    # build profiles, ignored
    """,
    re.VERBOSE,
)


def iter_paragraph_blocks(text: str) -> Iterator[str]:
    """Yield the raw text of each blank-line separated paragraph."""
    lines: list[str] = []
    for line in text.splitlines():
        if line.strip() == "":
            if lines:
                yield "\n".join(lines)
                lines = []
        else:
            lines.append(line)
    if lines:
        yield "\n".join(lines)


def _check_lines(lines: list[str]) -> None:
    """Reject the lines that deb822 would otherwise drop without a trace."""
    seen_field = False
    for lineno, line in enumerate(lines, start=1):
        if line[0] in " \t":
            if not seen_field:
                raise MalformedInput(f"line {lineno}: continuation line without a preceding field")
            continue
        key, sep, _ = line.partition(":")
        if not sep or not key.strip() or any(c.isspace() for c in key):
            raise MalformedInput(f"line {lineno}: expected 'Key: value', got '{line}'")
        seen_field = True


def _fold(value: str) -> str:
    # continuation lines are trimmed and joined with newlines
    lines = [line.strip() for line in value.splitlines()]
    if lines and not lines[0]:
        lines = lines[1:]
    return "\n".join(lines)


def parse_paragraph(block: str) -> dict[str, str]:
    """Parse a single paragraph into a field mapping.

    Raises:
        MalformedInput: on a column-0 line without ``:`` or a continuation with no field to continue
    """
    lines = [line for line in block.splitlines() if line.strip() and not line.startswith("#")]
    _check_lines(lines)
    paragraph = deb822.Deb822(lines)
    return {key: _fold(value) for key, value in paragraph.items()}


def parse_paragraphs(text: str) -> list[dict[str, str]]:
    return [parse_paragraph(block) for block in iter_paragraph_blocks(text)]


def parse_relation(token: str) -> PackageRelation:
    """Parse one alternative such as ``libc6 (>= 2.36)``."""
    raw = token.strip()
    if not raw:
        raise MalformedConstraint("Empty package range alternative")
    match = _RELATION_RE.match(raw)
    if match is None:
        if raw.startswith("("):
            raise MalformedConstraint(f"Empty package name in '{raw}'")
        raise MalformedConstraint(f"Failed to parse package relation '{raw}'")
    constraint_text = match["constraint"]
    if constraint_text is None:
        return PackageRelation(name=match["name"])
    constraint = VersionConstraint.parse(constraint_text)
    if constraint.kind is ConstraintKind.ANY:
        raise MalformedConstraint(f"Empty version range for package '{match['name']}'")
    return PackageRelation(name=match["name"], constraint=constraint)


def parse_dependency_list(text: str) -> list[DependencyGroup]:
    """Parse ``a (>= 1) | b, c`` into AND groups of OR alternatives.

    Examples:
        >>> [[r.name for r in g] for g in parse_dependency_list("a, b | c")]
        [['a'], ['b', 'c']]
    """
    if not text.strip():
        return []
    return [[parse_relation(alt) for alt in group.split("|")] for group in text.split(",")]


def parse_relation_list(text: str) -> list[PackageRelation]:
    """Parse a flat relationship field such as Conflicts or Replaces."""
    return [relation for group in parse_dependency_list(text) for relation in group]


def parse_identity_list(text: str) -> list[PackageIdentity]:
    """Parse a Provides-style list of ``name`` or ``name (version)`` items."""
    identities: list[PackageIdentity] = []
    if not text.strip():
        return identities
    for item in text.split(","):
        relation = parse_relation(item)
        constraint = relation.constraint
        if constraint.kind is ConstraintKind.ANY:
            identities.append(PackageIdentity(name=relation.name))
        elif constraint.kind is ConstraintKind.EXACT:
            identities.append(PackageIdentity(name=relation.name, version=constraint.version))
        else:
            raise MalformedConstraint(f"Provides entry '{item.strip()}' must name a single version")
    return identities


def parse_maintainer(text: str) -> tuple[str, str]:
    """Split ``Name <email>`` into its parts.

    Examples:
        >>> parse_maintainer("John Doe <john.doe@example.com>")
        ('John Doe', 'john.doe@example.com')
        >>> parse_maintainer("nobody")
        ('nobody', '')
    """
    start = text.find("<")
    end = text.find(">", start + 1) if start != -1 else -1
    if start == -1 or end == -1:
        return text, ""
    return text[:start].strip(), text[start + 1 : end].strip()


def _split_architectures(text: str) -> list[str]:
    return [arch for arch in re.split(r"[,\s]+", text) if arch]


def build_record(fields: Mapping[str, str]) -> PackageRecord:
    """Build a PackageRecord from a parsed control paragraph.

    Raises:
        MissingField: if Package, Version or Maintainer is absent
        MalformedInput: if the version or a relationship field cannot be parsed
    """
    for field in REQUIRED_FIELDS:
        if field not in fields:
            raise MissingField(field)

    name = fields["Package"].strip()
    if not name:
        raise MalformedInput("'Package' field is empty")
    maintainer_name, maintainer_email = parse_maintainer(fields["Maintainer"])

    relations = RelationSet(
        depends=parse_dependency_list(fields.get("Depends", "")),
        recommends=parse_dependency_list(fields.get("Recommends", "")),
        suggests=parse_dependency_list(fields.get("Suggests", "")),
        conflicts=parse_relation_list(fields.get("Conflicts", "")),
        replaces=parse_relation_list(fields.get("Replaces", "")),
        provides=parse_identity_list(fields.get("Provides", "")),
    )

    return PackageRecord(
        identity=PackageIdentity(name=name, version=parse_version(fields["Version"])),
        maintainer=Maintainer(name=maintainer_name, email=maintainer_email),
        description=fields.get("Description", ""),
        architectures=_split_architectures(fields.get("Architecture", "")),
        relations=relations,
        extra={key: value for key, value in fields.items() if key not in MODELED_FIELDS},
    )


def format_relation(relation: PackageRelation) -> str:
    """Render a relation back into Debian syntax, e.g. ``libc6 (>= 2.36)``."""
    constraint = relation.constraint
    if constraint.kind is ConstraintKind.ANY:
        return relation.name
    if constraint.operator is None:
        return f"{relation.name} ({constraint})"
    return f"{relation.name} ({constraint.operator} {constraint.version})"


def format_dependency_list(groups: Sequence[DependencyGroup]) -> str:
    return ", ".join(" | ".join(format_relation(alt) for alt in group) for group in groups)
