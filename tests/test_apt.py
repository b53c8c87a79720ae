import httpx
import pytest

from ipmrepo.errors import SourceUnavailable
from ipmrepo.models import AptSource
from ipmrepo.sources.apt import AptSourceAdapter, index_paths, pool_bucket, pool_path

BASE = "https://deb.example.test/debian"
PACKAGES = f"{BASE}/dists/stable/main/binary-amd64/Packages"


async def _fetch(adapter, transport):
    async with httpx.AsyncClient(transport=transport) as client:
        return await adapter.fetch(client)


def test_index_paths_prefer_compressed():
    assert index_paths("stable", "main", "source") == [
        "dists/stable/main/source/Sources.gz",
        "dists/stable/main/source/Sources",
    ]


@pytest.mark.parametrize(("name", "bucket"), [("foo", "f"), ("libfoo", "libf"), ("lib", "l")])
def test_pool_bucket(name, bucket):
    assert pool_bucket(name) == bucket


def test_pool_path_strips_epoch():
    fields = {"Package": "libfoo", "Version": "1:2.0-1", "Architecture": "arm64"}
    assert pool_path("main", fields, "amd64") == "pool/main/libf/libfoo/libfoo_2.0-1_arm64.deb"


@pytest.mark.asyncio
async def test_compressed_index(routes_transport, packages_text, gzipped):
    transport = routes_transport({f"{PACKAGES}.gz": gzipped(packages_text)})
    catalog = await _fetch(AptSourceAdapter(AptSource(base_uri=BASE)), transport)

    assert [entry.name for entry in catalog.entries] == ["foo", "bar"]
    foo = catalog.entries[0]
    assert foo.download_url == f"{BASE}/pool/main/f/foo/foo_1.2.3-1_amd64.deb"
    assert catalog.author.name == "deb.example.test"


@pytest.mark.asyncio
async def test_falls_back_to_uncompressed_index(routes_transport, packages_text):
    seen: list[str] = []
    transport = routes_transport({PACKAGES: packages_text}, seen)
    catalog = await _fetch(AptSourceAdapter(AptSource(base_uri=BASE)), transport)

    assert seen == [f"{PACKAGES}.gz", PACKAGES]
    assert [entry.name for entry in catalog.entries] == ["foo", "bar"]


@pytest.mark.asyncio
async def test_missing_filename_uses_pool_layout(routes_transport, packages_text):
    transport = routes_transport({PACKAGES: packages_text})
    catalog = await _fetch(AptSourceAdapter(AptSource(base_uri=f"{BASE}/")), transport)
    bar = catalog.entries[1]
    assert bar.download_url == f"{BASE}/pool/main/b/bar/bar_2.0_all.deb"


@pytest.mark.asyncio
async def test_source_indices(routes_transport):
    sources_text = "Package: hello\nVersion: 2.10-3\nMaintainer: Santiago <s@example.test>\n"
    transport = routes_transport({f"{BASE}/dists/bookworm/main/source/Sources": sources_text})
    source = AptSource(base_uri=BASE, suites=("bookworm",), architectures=())
    catalog = await _fetch(AptSourceAdapter(source), transport)

    assert catalog.entries[0].download_url == f"{BASE}/pool/main/h/hello/hello_2.10-3.dsc"


@pytest.mark.asyncio
async def test_malformed_paragraph_is_skipped(routes_transport, packages_text, caplog):
    broken = "Package: broken\nVersion: 1.0\n"
    transport = routes_transport({PACKAGES: f"{broken}\n{packages_text}"})
    catalog = await _fetch(AptSourceAdapter(AptSource(base_uri=BASE)), transport)

    assert [entry.name for entry in catalog.entries] == ["foo", "bar"]
    assert any("Maintainer" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_failed_triple_does_not_hide_others(routes_transport, packages_text):
    source = AptSource(base_uri=BASE, components=("main", "contrib"))
    transport = routes_transport({PACKAGES: packages_text})
    catalog = await _fetch(AptSourceAdapter(source), transport)
    assert len(catalog.entries) == 2


@pytest.mark.asyncio
async def test_unavailable_when_every_variant_fails(routes_transport):
    transport = routes_transport({f"{PACKAGES}.gz": 500, PACKAGES: 503})
    with pytest.raises(SourceUnavailable) as excinfo:
        await _fetch(AptSourceAdapter(AptSource(base_uri=BASE)), transport)

    causes = excinfo.value.causes
    assert len(causes) == 2
    assert all(isinstance(c, httpx.HTTPStatusError) for c in causes)
    assert [c.response.status_code for c in causes] == [500, 503]


@pytest.mark.asyncio
async def test_corrupt_gzip_falls_back(routes_transport, packages_text):
    transport = routes_transport({f"{PACKAGES}.gz": b"not gzip at all", PACKAGES: packages_text})
    catalog = await _fetch(AptSourceAdapter(AptSource(base_uri=BASE)), transport)
    assert len(catalog.entries) == 2


@pytest.mark.asyncio
async def test_index_keeps_debian_version_spelling(routes_transport):
    text = """\
Package: openssh-server
Version: 1:9.2p1-2+deb12u3
Architecture: amd64
Maintainer: Debian OpenSSH Maintainers <debian-ssh@lists.debian.org>
Depends: libc6 (>= 2.36), openssh-client (= 1:9.2p1-2+deb12u3)
Filename: pool/main/o/openssh/openssh-server_9.2p1-2+deb12u3_amd64.deb

Package: libxml2
Version: 2.9.14+dfsg-1.3~deb12u1
Architecture: amd64
Maintainer: Debian XML/SGML Group <debian-xml-sgml-pkgs@lists.alioth.debian.org>
Filename: pool/main/libx/libxml2/libxml2_2.9.14+dfsg-1.3~deb12u1_amd64.deb
"""
    transport = routes_transport({PACKAGES: text})
    catalog = await _fetch(AptSourceAdapter(AptSource(base_uri=BASE)), transport)

    versions = {entry.name: str(entry.record.version) for entry in catalog.entries}
    assert versions == {"openssh-server": "1:9.2p1-2+deb12u3", "libxml2": "2.9.14+dfsg-1.3~deb12u1"}
    [client] = catalog.entries[0].record.relations.depends[1]
    assert str(client.constraint) == "=1:9.2p1-2+deb12u3"
