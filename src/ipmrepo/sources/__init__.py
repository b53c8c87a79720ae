"""Source adapters, one per repository source kind."""

from typing import Protocol

import httpx

from ipmrepo.models import AptSource, Catalog, NativeSource

from .apt import AptSourceAdapter
from .native import NativeSourceAdapter


class SourceAdapter(Protocol):
    async def fetch(self, client: httpx.AsyncClient) -> Catalog: ...


def resolve_adapter(source: AptSource | NativeSource) -> SourceAdapter:
    """Select the adapter for a source; called once when sources are resolved."""
    match source:
        case AptSource():
            return AptSourceAdapter(source)
        case NativeSource():
            return NativeSourceAdapter(source)
        case _:
            raise TypeError(f"Unsupported repository source: {source!r}")


__all__ = [
    "AptSourceAdapter",
    "NativeSourceAdapter",
    "SourceAdapter",
    "resolve_adapter",
]
