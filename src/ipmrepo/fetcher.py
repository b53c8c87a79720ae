"""HTTP transport for repository indices, manifests and package downloads."""

import gzip
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import aiofiles
import httpx

from ipmrepo.constants import REQUEST_TIMEOUT
from ipmrepo.utils import try_parse_date

logger = logging.getLogger(__name__)


@dataclass
class FetchedBody:
    """A successfully fetched response body."""

    url: str
    content: bytes
    last_modified: datetime | None = None

    def text(self) -> str:
        """Decode the body, transparently decompressing gzip payloads by URL suffix."""
        data = gzip.decompress(self.content) if self.url.endswith(".gz") else self.content
        return data.decode("utf-8", errors="replace")


def make_client(
    transport: httpx.AsyncBaseTransport | None = None,
    timeout: float = REQUEST_TIMEOUT,
) -> httpx.AsyncClient:
    """Create the shared client used for one catalog operation."""
    return httpx.AsyncClient(follow_redirects=True, timeout=timeout, transport=transport)


async def fetch_bytes(client: httpx.AsyncClient, url: str) -> FetchedBody:
    """GET a URL and return its body.

    Raises:
        httpx.HTTPError: on transport failures and non-2xx responses
    """
    try:
        response = await client.get(url)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        msg = f"Failed to fetch {url}: {e}"
        if e.response.status_code == 404:
            logger.debug(msg)
        else:
            logger.warning(msg)
        raise

    logger.debug(f"Fetched {url} ({len(response.content)} bytes)")
    return FetchedBody(
        url=url,
        content=response.content,
        last_modified=try_parse_date(response.headers.get("last-modified")),
    )


async def download_file(client: httpx.AsyncClient, url: str, output_path: Path) -> Path:
    """Stream a URL to a local path.

    Args:
        client: The client to download with
        url: The URL to download from
        output_path: Where to save the downloaded file

    Returns:
        The path that was written
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    # the body lands under a temporary name until the transfer completes
    part_path = output_path.with_name(f"{output_path.name}.part")
    try:
        async with client.stream("GET", url) as response:
            response.raise_for_status()
            async with aiofiles.open(part_path, "wb") as f:
                async for chunk in response.aiter_bytes():
                    await f.write(chunk)
        part_path.replace(output_path)
    except BaseException:
        part_path.unlink(missing_ok=True)
        raise
    logger.debug(f"Downloaded {url} to {output_path}")
    return output_path
