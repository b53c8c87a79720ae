import httpx
import pytest

from ipmrepo.aggregator import CatalogAggregator, FetchReport, local_file_name
from ipmrepo.errors import PartialFailure
from ipmrepo.models import AptSource, CatalogEntry, NativeSource, PackageIdentity, PackageRecord
from ipmrepo.sources import AptSourceAdapter, NativeSourceAdapter, resolve_adapter

GOOD = "https://good.example.test/repo/"
BAD = "https://bad.example.test/repo/"
MIRROR = "https://mirror.example.test/repo/"


def _entry(name: str, url: str) -> CatalogEntry:
    record = PackageRecord(identity=PackageIdentity(name=name, version="1.0"))
    return CatalogEntry(record=record, download_url=url)


def test_resolve_adapter_dispatches_by_kind():
    assert isinstance(resolve_adapter(AptSource(base_uri="https://deb.example.test/")), AptSourceAdapter)
    assert isinstance(resolve_adapter(NativeSource(base_url=GOOD)), NativeSourceAdapter)


def test_local_file_name():
    assert local_file_name(_entry("foo", "https://x.test/pool/foo_1.0_amd64.deb")) == "foo_1.0_amd64.deb"
    assert local_file_name(_entry("foo", "https://x.test")) == "foo-1.0.package"


@pytest.mark.asyncio
async def test_failed_source_does_not_suppress_others(routes_transport, native_manifest, caplog):
    transport = routes_transport({f"{BAD}repo.yaml": 500, f"{GOOD}repo.yaml": native_manifest})
    aggregator = CatalogAggregator(
        [NativeSource(base_url=BAD), NativeSource(base_url=GOOD)],
        transport=transport,
    )

    matches = await aggregator.search(["foo"])

    assert [entry.name for entry in matches] == ["foo"]
    assert matches[0].download_url.startswith(GOOD)
    assert any("bad.example.test" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_timed_out_source_does_not_suppress_others(native_manifest):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "bad.example.test":
            raise httpx.ReadTimeout("timed out", request=request)
        return httpx.Response(200, text=native_manifest)

    aggregator = CatalogAggregator(
        [NativeSource(base_url=BAD), NativeSource(base_url=GOOD)],
        transport=httpx.MockTransport(handler),
    )

    result = await aggregator.collect()

    assert [entry.name for entry in result.entries] == ["foo"]
    assert result.entries[0].download_url.startswith(GOOD)
    [failure] = result.failures
    assert failure.source == NativeSource(base_url=BAD)
    assert isinstance(failure.error.causes[0], httpx.ReadTimeout)


@pytest.mark.asyncio
async def test_timeout_reaches_every_request(routes_transport, native_manifest):
    timeouts = []
    serve = routes_transport({f"{GOOD}repo.yaml": native_manifest})

    async def handler(request: httpx.Request) -> httpx.Response:
        timeouts.append(request.extensions["timeout"])
        return await serve.handle_async_request(request)

    aggregator = CatalogAggregator(
        [NativeSource(base_url=GOOD)],
        transport=httpx.MockTransport(handler),
        timeout=2.5,
    )

    assert [entry.name for entry in await aggregator.search(["foo"])] == ["foo"]
    assert timeouts == [{"connect": 2.5, "read": 2.5, "write": 2.5, "pool": 2.5}]

@pytest.mark.asyncio
async def test_collect_reports_failures(routes_transport, native_manifest):
    transport = routes_transport({f"{GOOD}repo.yaml": native_manifest})
    sources = [NativeSource(base_url=BAD), NativeSource(base_url=GOOD)]
    aggregator = CatalogAggregator(sources, transport=transport)

    result = await aggregator.collect()

    assert len(result.entries) == 1
    [failure] = result.failures
    assert failure.source == NativeSource(base_url=BAD)
    assert failure.error is not None


@pytest.mark.asyncio
async def test_search_is_exact_and_keeps_duplicates(routes_transport, native_manifest):
    transport = routes_transport({f"{GOOD}repo.yaml": native_manifest, f"{MIRROR}repo.yaml": native_manifest})
    sources = [NativeSource(base_url=GOOD), NativeSource(base_url=MIRROR)]
    aggregator = CatalogAggregator(sources, transport=transport)

    assert len(await aggregator.search(["foo"])) == 2
    assert await aggregator.search(["Foo", "fo"]) == []


@pytest.mark.asyncio
async def test_fetch_downloads_every_match(routes_transport, native_manifest, tmp_path):
    transport = routes_transport(
        {
            f"{GOOD}repo.yaml": native_manifest,
            f"{GOOD}packages/foo-1.0.0.ipak": b"good bytes",
            f"{MIRROR}repo.yaml": native_manifest,
        }
    )
    sources = [NativeSource(base_url=MIRROR), NativeSource(base_url=GOOD)]
    aggregator = CatalogAggregator(sources, transport=transport)

    report = await aggregator.fetch(["foo"], tmp_path / "downloads")

    assert report.downloaded == [tmp_path / "downloads" / "foo-1.0.0.ipak"]
    assert report.downloaded[0].read_bytes() == b"good bytes"
    [(entry, error)] = report.failures
    assert entry.download_url.startswith(MIRROR)
    with pytest.raises(PartialFailure) as excinfo:
        report.raise_for_failures()
    assert excinfo.value.causes == [error]


def test_empty_report_does_not_raise():
    FetchReport().raise_for_failures()


def test_from_config(tmp_path):
    config = tmp_path / "repos.list"
    config.write_text(f"ipm:{GOOD}\nbogus\napt:https://deb.example.test/debian bookworm\n")
    aggregator = CatalogAggregator.from_config([config])
    assert [type(adapter) for _, adapter in aggregator.adapters] == [NativeSourceAdapter, AptSourceAdapter]
