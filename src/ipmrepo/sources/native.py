"""Catalog adapter for hosts serving a native ``repo.yaml`` manifest."""

import logging

import httpx

from ipmrepo.constants import MANIFEST_NAME
from ipmrepo.errors import MalformedInput, SourceUnavailable
from ipmrepo.fetcher import fetch_bytes
from ipmrepo.models import Catalog, NativeSource, load_manifest
from ipmrepo.utils import resolve_url

logger = logging.getLogger(__name__)


def manifest_url(base_url: str) -> str:
    """
    Examples:
        >>> manifest_url("https://example.test/repo/")
        'https://example.test/repo/repo.yaml'
    """
    return f"{base_url.rstrip('/')}/{MANIFEST_NAME}"


class NativeSourceAdapter:
    """Fetches a single native manifest and makes every entry URL absolute."""

    def __init__(self, source: NativeSource):
        self.source = source
        self.url = manifest_url(source.base_url)

    async def fetch(self, client: httpx.AsyncClient) -> Catalog:
        """
        Raises:
            SourceUnavailable: on any transport or parse failure; there is no fallback
        """
        try:
            body = await fetch_bytes(client, self.url)
            catalog = load_manifest(body.content.decode("utf-8"))
        except (httpx.HTTPError, MalformedInput, UnicodeDecodeError) as e:
            raise SourceUnavailable(f"Failed to load manifest {self.url}", [e]) from e

        for entry in catalog.entries:
            entry.download_url = resolve_url(self.url, entry.download_url)

        logger.info(f"Loaded {len(catalog.entries)} packages from {self.url}")
        return catalog
