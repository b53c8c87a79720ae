import gzip
import io
import tarfile
from pathlib import Path

import httpx
import pytest

FOO_PARAGRAPH = """\
Package: foo
Version: 1.2.3-1
Architecture: amd64
Maintainer: Jane Doe <jane@example.test>
Depends: libc6 (>= 2.36), bar | baz
Filename: pool/main/f/foo/foo_1.2.3-1_amd64.deb
Description: a test package
 with a longer description.
"""

BAR_PARAGRAPH = """\
Package: bar
Version: 2.0
Architecture: all
Maintainer: Bar Team <bar@example.test>
"""

NATIVE_MANIFEST = """\
author:
  name: Repo Owner
  email: owner@example.test
last_modified: '2025-01-01T00:00:00Z'
packages:
- last_modified: '2025-01-01T00:00:00Z'
  info:
    identity:
      name: foo
      version: 1.0.0
    maintainer:
      name: Foo Dev
      email: foo@example.test
    architectures:
    - amd64
  url: packages/foo-1.0.0.ipak
"""


@pytest.fixture
def packages_text() -> str:
    return f"{FOO_PARAGRAPH}\n{BAR_PARAGRAPH}"


@pytest.fixture
def native_manifest() -> str:
    return NATIVE_MANIFEST


@pytest.fixture
def gzipped():
    return lambda text: gzip.compress(text.encode())


@pytest.fixture
def routes_transport():
    """Build a MockTransport serving fixed bodies by URL; anything else is a 404."""

    def make(routes: dict[str, bytes | str | int], seen: list[str] | None = None) -> httpx.MockTransport:
        def handler(request: httpx.Request) -> httpx.Response:
            url = str(request.url)
            if seen is not None:
                seen.append(url)
            body = routes.get(url)
            if body is None:
                return httpx.Response(404)
            if isinstance(body, int):
                return httpx.Response(body)
            return httpx.Response(200, content=body.encode() if isinstance(body, str) else body)

        return httpx.MockTransport(handler)

    return make


def _write_tar(path: Path, files: dict[str, str], mode: str) -> Path:
    with tarfile.open(path, mode) as tar:
        for name, content in files.items():
            data = content.encode()
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(data))
    return path


@pytest.fixture
def make_tar():
    return _write_tar


@pytest.fixture
def unpacked_deb(tmp_path: Path) -> Path:
    """A directory laid out like an unpacked foo_1.2.3-1_amd64.deb."""
    root = tmp_path / "foo"
    root.mkdir()
    (root / "debian-binary").write_text("2.0\n")
    control = {"./control": FOO_PARAGRAPH, "./conffiles": "/etc/foo.conf\n"}
    _write_tar(root / "control.tar.gz", control, "w:gz")
    _write_tar(root / "data.tar.xz", {"./usr/bin/foo": "#!/bin/sh\n", "./etc/foo.conf": "x=1\n"}, "w:xz")
    return root
