"""Catalog adapter for APT-style archive mirrors."""

import gzip
import logging
import re
import zlib
from collections.abc import Iterator
from urllib.parse import urljoin, urlparse

import httpx

from ipmrepo.control import build_record, iter_paragraph_blocks, parse_paragraph
from ipmrepo.errors import MalformedInput, SourceUnavailable
from ipmrepo.fetcher import FetchedBody, fetch_bytes
from ipmrepo.models import AptSource, Catalog, CatalogEntry, Maintainer
from ipmrepo.utils import ensure_trailing_slash, utcnow

logger = logging.getLogger(__name__)

SOURCE_ARCHITECTURE = "source"

_EPOCH_RE = re.compile(r"^\d+:")


def index_paths(suite: str, component: str, architecture: str) -> list[str]:
    """Candidate index paths for one triple, compressed first.

    Examples:
        >>> index_paths("bookworm", "main", "amd64")
        ['dists/bookworm/main/binary-amd64/Packages.gz', 'dists/bookworm/main/binary-amd64/Packages']
    """
    if architecture == SOURCE_ARCHITECTURE:
        stem = f"dists/{suite}/{component}/source/Sources"
    else:
        stem = f"dists/{suite}/{component}/binary-{architecture}/Packages"
    return [f"{stem}.gz", stem]


def pool_bucket(name: str) -> str:
    """The pool subdirectory a package name is filed under (``libf`` for ``libfoo``)."""
    if name.startswith("lib") and len(name) > 3:
        return name[:4]
    return name[:1]


def pool_path(component: str, fields: dict[str, str], architecture: str) -> str:
    """Conventional pool location for a paragraph without a ``Filename`` field.

    This follows the usual Debian layout but is only a guess; mirrors are free
    to lay out their pool differently.
    """
    name = fields["Package"].strip()
    version = _EPOCH_RE.sub("", fields["Version"].strip())
    if architecture == SOURCE_ARCHITECTURE:
        return f"pool/{component}/{pool_bucket(name)}/{name}/{name}_{version}.dsc"
    arch = (fields.get("Architecture", "").strip() or architecture).split()[0]
    return f"pool/{component}/{pool_bucket(name)}/{name}/{name}_{version}_{arch}.deb"


class AptSourceAdapter:
    """Assembles a catalog from the Packages (or Sources) indices of an APT mirror."""

    def __init__(self, source: AptSource):
        self.source = source
        self.base_uri = ensure_trailing_slash(source.base_uri)

    def triples(self) -> Iterator[tuple[str, str, str]]:
        architectures = self.source.architectures or (SOURCE_ARCHITECTURE,)
        for suite in self.source.suites:
            for component in self.source.components:
                for architecture in architectures:
                    yield suite, component, architecture

    async def _fetch_index(
        self, client: httpx.AsyncClient, suite: str, component: str, architecture: str
    ) -> tuple[FetchedBody, str]:
        """Fetch the first servable index variant for a triple and return it decoded."""
        causes: list[BaseException] = []
        for path in index_paths(suite, component, architecture):
            url = urljoin(self.base_uri, path)
            try:
                body = await fetch_bytes(client, url)
                return body, body.text()
            except (httpx.HTTPError, gzip.BadGzipFile, EOFError, zlib.error) as e:
                logger.debug(f"Index variant {url} unusable: {e}")
                causes.append(e)
        raise SourceUnavailable(f"Failed to fetch index for {suite}/{component}/{architecture}", causes)

    def _entries(
        self, text: str, body: FetchedBody, component: str, architecture: str
    ) -> Iterator[CatalogEntry]:
        last_modified = body.last_modified or utcnow()
        for block in iter_paragraph_blocks(text):
            try:
                fields = parse_paragraph(block)
                record = build_record(fields)
            except MalformedInput as e:
                logger.warning(f"Skipping package in {body.url}: {e}")
                continue

            filename = fields.get("Filename", "").strip()
            relative = filename or pool_path(component, fields, architecture)
            yield CatalogEntry(
                record=record,
                download_url=urljoin(self.base_uri, relative),
                last_modified=last_modified,
            )

    async def fetch(self, client: httpx.AsyncClient) -> Catalog:
        """Fetch every (suite, component, architecture) index and merge the entries.

        Raises:
            SourceUnavailable: if no index could be fetched for any triple
        """
        entries: list[CatalogEntry] = []
        causes: list[BaseException] = []
        fetched_any = False
        for suite, component, architecture in self.triples():
            try:
                body, text = await self._fetch_index(client, suite, component, architecture)
            except SourceUnavailable as e:
                logger.warning(f"Skipping {self.source.base_uri} {suite}/{component}/{architecture}: {e}")
                causes.extend(e.causes)
                continue
            fetched_any = True
            entries.extend(self._entries(text, body, component, architecture))

        if not fetched_any:
            raise SourceUnavailable(f"Unable to fetch any package index from {self.source.base_uri}", causes)

        num_found = len(entries)
        logger.info(f"Loaded {num_found} packages from {self.source.base_uri}")
        return Catalog(
            author=Maintainer(name=urlparse(self.source.base_uri).netloc),
            last_modified=utcnow(),
            entries=entries,
        )
