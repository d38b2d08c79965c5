import locale
from datetime import datetime, timezone
from pathlib import Path

import pytest

from folio.config import SiteConfig
from folio.content import load_documents
from folio.feeds import AtomGenerator, RSSGenerator, collect_feed, create_default_feed_registry
from folio.frontmatter import FrontMatter

NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)


def write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def make_feed(tmp_path: Path, defaults=None):
    config = SiteConfig(
        project_root=tmp_path,
        base_url="http://x/",
        defaults=FrontMatter(defaults or {"site_title": "Site", "author": "Ann"}),
    )
    table, _ = load_documents(tmp_path / "markdown", config.defaults)
    return collect_feed(table, config, now=NOW)


def test_feed_collects_across_folders_newest_first(tmp_path):
    write(tmp_path / "markdown" / "blog" / "a.md", '+++\ntitle = "A"\ndate = 2023-01-01\n+++\nx')
    write(tmp_path / "markdown" / "notes" / "b.md", '+++\ntitle = "B"\ndate = 2024-01-01\n+++\nx')
    write(tmp_path / "markdown" / "c.md", '+++\ntitle = "C"\ndate = 2022-01-01\n+++\nx')
    feed, skipped = make_feed(tmp_path)
    assert [item.title for item in feed.items] == ["B", "A", "C"]
    assert feed.items[0].link == "http://x/notes/b.html"
    assert feed.updated == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert skipped == []


def test_ties_are_broken_by_source_path(tmp_path):
    write(tmp_path / "markdown" / "z.md", '+++\ntitle = "Z"\ndate = 2024-01-01\n+++\nx')
    write(tmp_path / "markdown" / "a.md", '+++\ntitle = "A"\ndate = 2024-01-01\n+++\nx')
    feed, _ = make_feed(tmp_path)
    assert [item.source_path for item in feed.items] == ["a.md", "z.md"]


def test_documents_need_title_and_date(tmp_path):
    write(tmp_path / "markdown" / "untitled.md", "+++\ndate = 2024-01-01\n+++\nx")
    write(tmp_path / "markdown" / "undated.md", '+++\ntitle = "U"\n+++\nx')
    feed, _ = make_feed(tmp_path)
    assert feed.items == []


def test_default_values_count_toward_eligibility(tmp_path):
    write(tmp_path / "markdown" / "page.md", "+++\ndate = 2024-01-01\n+++\nx")
    feed, _ = make_feed(tmp_path, defaults={"title": "Default Title"})
    assert [item.title for item in feed.items] == ["Default Title"]


def test_bad_dates_are_skipped(tmp_path):
    write(tmp_path / "markdown" / "bad.md", '+++\ntitle = "Bad"\ndate = "soon"\n+++\nx')
    feed, skipped = make_feed(tmp_path)
    assert feed.items == []
    assert [error.source_path for error in skipped] == ["bad.md"]


def test_empty_feed_uses_build_time(tmp_path):
    (tmp_path / "markdown").mkdir()
    feed, _ = make_feed(tmp_path)
    assert feed.items == []
    assert feed.updated == NOW
    assert feed.title == "Site"
    assert feed.author == "Ann"


def test_summary_falls_back_to_description(tmp_path):
    write(
        tmp_path / "markdown" / "a.md",
        '+++\ntitle = "A"\ndate = 2024-01-01\ndescription = "About A"\nimage = "images/a.png"\n+++\nx',
    )
    feed, _ = make_feed(tmp_path)
    assert feed.items[0].summary == "About A"
    assert feed.items[0].image == "http://x/images/a.png"


def test_atom_output_escapes_text(tmp_path):
    write(tmp_path / "markdown" / "a.md", '+++\ntitle = "Tom & <Jerry>"\ndate = 2024-01-01\n+++\nx')
    feed, _ = make_feed(tmp_path)
    xml = AtomGenerator().generate(feed)
    assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?>')
    assert "<title>Tom &amp; &lt;Jerry&gt;</title>" in xml
    assert "<updated>2024-01-01T00:00:00Z</updated>" in xml
    assert '<link rel="self" href="http://x/feed.xml"/>' in xml


def test_rss_output_uses_rfc822_dates(tmp_path):
    write(tmp_path / "markdown" / "a.md", '+++\ntitle = "A"\ndate = 2024-01-01\n+++\nx')
    feed, _ = make_feed(tmp_path)
    xml = RSSGenerator().generate(feed)
    assert "<pubDate>Mon, 01 Jan 2024 00:00:00 +0000</pubDate>" in xml
    assert "<link>http://x/a.html</link>" in xml


def test_registry_writes_both_feeds(tmp_path):
    (tmp_path / "markdown").mkdir()
    feed, _ = make_feed(tmp_path)
    out = tmp_path / "out"
    out.mkdir()
    written = create_default_feed_registry().generate_all(out, feed)
    assert written == ["feed.xml", "rss.xml"]
    assert (out / "feed.xml").exists()
    assert (out / "rss.xml").exists()


@pytest.fixture
def german_time_locale():
    previous = locale.setlocale(locale.LC_TIME)
    try:
        locale.setlocale(locale.LC_TIME, "de_DE.UTF-8")
    except locale.Error:
        pytest.skip("de_DE.UTF-8 locale not available")
    yield
    locale.setlocale(locale.LC_TIME, previous)


def test_rss_dates_ignore_the_process_locale(tmp_path, german_time_locale):
    write(tmp_path / "markdown" / "a.md", '+++\ntitle = "A"\ndate = 2024-03-05\n+++\nx')
    feed, _ = make_feed(tmp_path)
    xml = RSSGenerator().generate(feed)
    assert "<pubDate>Tue, 05 Mar 2024 00:00:00 +0000</pubDate>" in xml


def test_rss_dates_are_converted_to_utc(tmp_path):
    write(tmp_path / "markdown" / "a.md", '+++\ntitle = "A"\ndate = 2024-03-05T02:30:00+02:00\n+++\nx')
    feed, _ = make_feed(tmp_path)
    xml = RSSGenerator().generate(feed)
    assert "<pubDate>Tue, 05 Mar 2024 00:30:00 +0000</pubDate>" in xml
