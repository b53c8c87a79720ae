"""Combines the catalogs of every configured repository source."""

import asyncio
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import httpx

from ipmrepo.constants import REQUEST_TIMEOUT
from ipmrepo.errors import PartialFailure, SourceUnavailable
from ipmrepo.fetcher import download_file, make_client
from ipmrepo.models import AptSource, Catalog, CatalogEntry, NativeSource
from ipmrepo.models.source import load_sources
from ipmrepo.sources import SourceAdapter, resolve_adapter
from ipmrepo.utils import last_path_segment

logger = logging.getLogger(__name__)


@dataclass
class SourceResult:
    """The complete outcome of fetching one source: a catalog or the error."""

    source: AptSource | NativeSource
    catalog: Catalog | None = None
    error: SourceUnavailable | None = None

    @property
    def ok(self) -> bool:
        return self.catalog is not None


@dataclass
class CollectResult:
    entries: list[CatalogEntry] = field(default_factory=list)
    failures: list[SourceResult] = field(default_factory=list)


@dataclass
class FetchReport:
    downloaded: list[Path] = field(default_factory=list)
    failures: list[tuple[CatalogEntry, BaseException]] = field(default_factory=list)

    def raise_for_failures(self) -> None:
        if self.failures:
            raise PartialFailure(
                f"{len(self.failures)} of {len(self.failures) + len(self.downloaded)} downloads failed",
                [error for _, error in self.failures],
            )


def local_file_name(entry: CatalogEntry) -> str:
    """File name for a downloaded entry: the URL's last path segment if it has one."""
    return last_path_segment(entry.download_url) or f"{entry.name}-{entry.record.version}.package"


class CatalogAggregator:
    """Searches and downloads across all configured sources.

    Each source is resolved to its adapter once, when the aggregator is built.
    """

    def __init__(
        self,
        sources: Sequence[AptSource | NativeSource],
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = REQUEST_TIMEOUT,
    ):
        self.adapters: list[tuple[AptSource | NativeSource, SourceAdapter]] = [
            (source, resolve_adapter(source)) for source in sources
        ]
        self.transport = transport
        self.timeout = timeout

    @classmethod
    def from_config(cls, paths: Iterable[Path] | None = None, **kwargs) -> "CatalogAggregator":
        return cls(load_sources(paths), **kwargs)

    @property
    def sources(self) -> list[AptSource | NativeSource]:
        return [source for source, _ in self.adapters]

    async def _fetch_source(
        self, client: httpx.AsyncClient, source: AptSource | NativeSource, adapter: SourceAdapter
    ) -> SourceResult:
        try:
            catalog = await adapter.fetch(client)
        except SourceUnavailable as e:
            logger.warning(f"Skipping source {source}: {e}")
            return SourceResult(source=source, error=e)
        return SourceResult(source=source, catalog=catalog)

    async def collect(self) -> CollectResult:
        """Fetch every source concurrently and fold the completed results in source order."""
        async with make_client(self.transport, self.timeout) as client:
            results = await asyncio.gather(
                *(self._fetch_source(client, source, adapter) for source, adapter in self.adapters)
            )

        combined = CollectResult()
        for result in results:
            if result.ok:
                combined.entries.extend(result.catalog.entries)
            else:
                combined.failures.append(result)
        return combined

    async def search(self, names: Iterable[str]) -> list[CatalogEntry]:
        """Return every entry whose name exactly matches one of ``names``.

        Matches from different sources are all kept, even when they share a name.
        """
        wanted = set(names)
        collected = await self.collect()
        return [entry for entry in collected.entries if entry.name in wanted]

    async def fetch(self, names: Iterable[str], dest: Path) -> FetchReport:
        """Search, then download every match into ``dest``.

        A failed download is recorded in the report and the remaining matches
        are still attempted.
        """
        matches = await self.search(names)
        report = FetchReport()
        if not matches:
            return report

        dest.mkdir(parents=True, exist_ok=True)
        async with make_client(self.transport, self.timeout) as client:
            for entry in matches:
                output_path = dest / local_file_name(entry)
                try:
                    report.downloaded.append(await download_file(client, entry.download_url, output_path))
                except (httpx.HTTPError, OSError) as e:
                    logger.warning(f"Failed to download {entry.name} from {entry.download_url}: {e}")
                    report.failures.append((entry, e))
        return report
