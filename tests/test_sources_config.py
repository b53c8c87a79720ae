import logging

import pytest

from ipmrepo.errors import MalformedInput
from ipmrepo.models import AptSource, NativeSource
from ipmrepo.models.source import load_sources, parse_source_line, parse_sources


def test_malformed_line_is_skipped_with_warning(caplog):
    text = "not-a-valid-entry\nipm:https://example.test/repo/\n"
    with caplog.at_level(logging.WARNING):
        sources = parse_sources(text, origin="repos.list")

    assert sources == [NativeSource(base_url="https://example.test/repo/")]
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "repos.list:1" in warnings[0].getMessage()


def test_unknown_type_and_bad_url_are_skipped():
    text = "\n".join(["rpm:https://example.test/", "ipm:ftp//broken", "apt:https://deb.example.test/debian"])
    sources = parse_sources(text)
    assert len(sources) == 1
    assert isinstance(sources[0], AptSource)


def test_blank_lines_and_comments_are_ignored():
    text = "\n# mirrors\n   \nipm:https://a.example.test/\n"
    assert parse_sources(text) == [NativeSource(base_url="https://a.example.test/")]


def test_apt_line_defaults():
    source = parse_source_line("apt:https://deb.example.test/debian")
    assert source.base_uri == "https://deb.example.test/debian"
    assert source.suites == ("stable",)
    assert source.components == ("main",)
    assert source.architectures == ("amd64",)


def test_apt_line_with_options_suite_and_components():
    source = parse_source_line("apt:[arch=amd64,arm64] https://deb.example.test/debian bookworm main contrib")
    assert source.suites == ("bookworm",)
    assert source.components == ("main", "contrib")
    assert source.architectures == ("amd64", "arm64")


def test_apt_source_only_architecture_means_source_indices():
    source = parse_source_line("apt:[arch=source] https://deb.example.test/debian bookworm")
    assert source.architectures == ()


@pytest.mark.parametrize(
    "line", ["ipm", "apt:", "apt:[foo=bar] https://deb.example.test/", "svn:https://x.test/"]
)
def test_parse_source_line_rejects(line):
    with pytest.raises(MalformedInput):
        parse_source_line(line)


def test_load_sources_concatenates_in_order_and_skips_missing(tmp_path):
    user = tmp_path / "user.list"
    system = tmp_path / "system.list"
    user.write_text("ipm:https://user.example.test/\n")
    system.write_text("ipm:https://system.example.test/\n")

    sources = load_sources([user, tmp_path / "missing.list", system])
    assert [s.base_url for s in sources] == ["https://user.example.test/", "https://system.example.test/"]
