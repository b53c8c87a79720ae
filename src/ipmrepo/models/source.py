"""Configured repository sources and the ``repos.list`` configuration format.

Each non-blank line is ``{type}:{url}``. APT lines may append a sources.list
style tail with an optional ``[arch=...]`` option, a suite and components::

    ipm:https://example.test/repo/
    apt:https://deb.debian.org/debian
    apt:[arch=amd64,arm64] https://deb.debian.org/debian bookworm main contrib
"""

import logging
import re
from collections.abc import Iterable
from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from ipmrepo import constants
from ipmrepo.errors import MalformedInput

logger = logging.getLogger(__name__)

_URL_RE = re.compile(r"^https?://[^\s/$.?#].[^\s]*$")
_OPTIONS_RE = re.compile(r"^\[(?P<options>[^\]]*)\]\s*")


class AptSource(BaseModel):
    """An APT-style archive mirror."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["apt"] = "apt"
    base_uri: str
    suites: tuple[str, ...] = Field(default_factory=lambda: tuple(constants.DEFAULT_APT_SUITES))
    components: tuple[str, ...] = Field(default_factory=lambda: tuple(constants.DEFAULT_APT_COMPONENTS))
    # empty means source indices only
    architectures: tuple[str, ...] = Field(default_factory=lambda: (constants.DEFAULT_ARCHITECTURE,))

    def __str__(self) -> str:
        return (
            f"apt: {self.base_uri} suites={','.join(self.suites)} "
            f"components={','.join(self.components)} arch={','.join(self.architectures) or 'source'}"
        )


class NativeSource(BaseModel):
    """A plain HTTP host serving a native ``repo.yaml`` manifest."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["ipm"] = "ipm"
    base_url: str

    def __str__(self) -> str:
        return f"ipm: {self.base_url}"


RepositorySource = Annotated[AptSource | NativeSource, Field(discriminator="kind")]


def _parse_apt(rest: str) -> AptSource:
    architectures = None
    if match := _OPTIONS_RE.match(rest):
        rest = rest[match.end() :]
        for option in match["options"].split():
            key, _, value = option.partition("=")
            if key != "arch":
                raise MalformedInput(f"Unknown APT option '{key}'")
            architectures = tuple(arch for arch in value.split(",") if arch and arch != "source")

    tokens = rest.split()
    if not tokens:
        raise MalformedInput("APT entry without a URI")
    uri, suites, components = tokens[0], tokens[1:2], tokens[2:]
    if not _URL_RE.match(uri):
        raise MalformedInput(f"Invalid URL format: {uri}")

    fields = {"base_uri": uri}
    if suites:
        fields["suites"] = tuple(suites)
    if components:
        fields["components"] = tuple(components)
    if architectures is not None:
        fields["architectures"] = architectures
    return AptSource(**fields)


def _parse_native(rest: str) -> NativeSource:
    url = rest.strip()
    if not _URL_RE.match(url):
        raise MalformedInput(f"Invalid URL format: {url}")
    return NativeSource(base_url=url)


def parse_source_line(line: str) -> AptSource | NativeSource:
    """Parse a single ``{type}:{url}`` configuration line.

    Raises:
        MalformedInput: if the line has no ``:`` separator, an unknown type, or a bad URL
    """
    repo_type, sep, rest = line.strip().partition(":")
    if not sep:
        raise MalformedInput(f"Malformed repository entry '{line.strip()}'. Expected 'type:url' format.")
    match repo_type.strip():
        case "apt":
            return _parse_apt(rest.strip())
        case "ipm":
            return _parse_native(rest)
        case other:
            raise MalformedInput(f"Unknown repository type '{other}' in entry '{line.strip()}'")


def parse_sources(text: str, origin: str = "<config>") -> list[AptSource | NativeSource]:
    """Parse every usable line of a configuration text, warning about the rest."""
    sources: list[AptSource | NativeSource] = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        if not line.strip() or line.lstrip().startswith("#"):
            continue
        try:
            sources.append(parse_source_line(line))
        except MalformedInput as e:
            logger.warning(f"Skipping {origin}:{lineno}: {e}")
    return sources


def default_source_paths() -> list[Path]:
    """User-scope configuration first, then system-scope."""
    return [constants.USER_SOURCES_PATH, constants.SYSTEM_SOURCES_PATH]


def load_sources(paths: Iterable[Path] | None = None) -> list[AptSource | NativeSource]:
    """Read and concatenate the source configuration files that exist."""
    sources: list[AptSource | NativeSource] = []
    for path in default_source_paths() if paths is None else paths:
        if not path.is_file():
            logger.debug(f"No repository configuration at {path}")
            continue
        sources.extend(parse_sources(path.read_text(encoding="utf-8"), origin=str(path)))
    return sources
