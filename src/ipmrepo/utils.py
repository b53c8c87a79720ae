import datetime
import logging
from urllib.parse import urljoin, urlparse

from dateutil.parser import parse as parse_date

logger = logging.getLogger(__name__)


def try_parse_date(date_str: str | None) -> datetime.datetime | None:
    """Try to parse a date string into a timestamp.

    Args:
        date_str: The date string to parse (e.g., from HTTP Last-Modified header)

    Returns:
        The parsed timestamp, or None if parsing failed or date_str is None
    """

    try:
        return parse_date(date_str) if date_str else None
    except (ValueError, OverflowError) as e:
        logger.debug(f"Failed to parse date '{date_str}': {e}")
        return None


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


def ensure_trailing_slash(url: str) -> str:
    return url if url.endswith("/") else f"{url}/"


def resolve_url(base_url: str, url: str) -> str:
    """Resolve a possibly source-relative URL against the document it came from.

    Examples:
        >>> resolve_url("https://example.test/repo/repo.yaml", "packages/foo.ipak")
        'https://example.test/repo/packages/foo.ipak'
        >>> resolve_url("https://example.test/repo/repo.yaml", "/packages/foo.ipak")
        'https://example.test/packages/foo.ipak'
    """
    return urljoin(base_url, url)


def last_path_segment(url: str) -> str:
    """Return the final non-empty path segment of a URL, or an empty string."""
    path = urlparse(url).path
    return path.rstrip("/").rsplit("/", 1)[-1] if path.strip("/") else ""
