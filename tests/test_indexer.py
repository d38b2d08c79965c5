from pathlib import Path

from folio.content import load_documents
from folio.errors import DateParseError
from folio.frontmatter import FrontMatter
from folio.indexer import PostIndexer, TermLink, author_path, tag_path


def write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def make_indexer(content: Path, defaults=None) -> PostIndexer:
    table, failures = load_documents(content, FrontMatter(defaults or {}))
    assert failures == []
    return PostIndexer(table, "http://x/")


def test_posts_are_grouped_by_year_descending(tmp_path):
    write(tmp_path / "posts" / "old.md", "+++\ndate = 2022-06-01\n+++\nold")
    write(tmp_path / "posts" / "new.md", "+++\ndate = 2024-06-01\n+++\nnew")
    write(tmp_path / "posts" / "mid.md", "+++\ndate = 2023-06-01\n+++\nmid")
    index = make_indexer(tmp_path).index("posts")
    assert [bucket.year for bucket in index.years] == [2024, 2023, 2022]


def test_entries_within_a_year_are_ordered_by_name(tmp_path):
    write(tmp_path / "posts" / "beta.md", "+++\ndate = 2024-01-01\n+++\nb")
    write(tmp_path / "posts" / "alpha.md", "+++\ndate = 2024-12-01\n+++\na")
    (bucket,) = make_indexer(tmp_path).index("posts").years
    assert [entry.display_name for entry in bucket.entries] == ["Alpha", "Beta"]
    assert bucket.entries[0].link == "http://x/posts/alpha.html"


def test_undated_and_nested_documents_are_not_listed(tmp_path):
    write(tmp_path / "posts" / "dated.md", "+++\ndate = 2024-01-01\n+++\nx")
    write(tmp_path / "posts" / "undated.md", '+++\ntitle = "Page"\n+++\nx')
    write(tmp_path / "posts" / "archive" / "deep.md", "+++\ndate = 2020-01-01\n+++\nx")
    index = make_indexer(tmp_path).index("posts")
    names = [entry.display_name for bucket in index.years for entry in bucket.entries]
    assert names == ["Dated"]


def test_default_dates_do_not_turn_pages_into_posts(tmp_path):
    write(tmp_path / "posts" / "page.md", "no metadata")
    index = make_indexer(tmp_path, defaults={"date": "2024-01-01"}).index("posts")
    assert not index


def test_bad_dates_are_skipped_with_a_warning(tmp_path, caplog):
    write(tmp_path / "posts" / "good.md", "+++\ndate = 2024-01-01\n+++\nx")
    write(tmp_path / "posts" / "bad.md", '+++\ndate = "someday"\n+++\nx')
    indexer = make_indexer(tmp_path)
    with caplog.at_level("WARNING"):
        index = indexer.index("posts")
    assert [entry.display_name for entry in index.years[0].entries] == ["Good"]
    assert len(indexer.skipped) == 1
    assert isinstance(indexer.skipped[0], DateParseError)
    assert indexer.skipped[0].source_path == "posts/bad.md"
    assert "posts/bad.md" in caplog.text


def test_index_is_memoized_per_folder(tmp_path):
    write(tmp_path / "posts" / "a.md", "+++\ndate = 2024-01-01\n+++\nx")
    indexer = make_indexer(tmp_path)
    assert indexer.index("posts") is indexer.index("/posts/")
    assert indexer.index("posts") is indexer.index('"posts"')


def test_render_produces_year_headings_and_links(tmp_path):
    write(tmp_path / "posts" / "Post1.md", "+++\ndate = 2024-03-01\n+++\nx")
    html = make_indexer(tmp_path).render("posts")
    assert "<h4>2024</h4>" in html
    assert '<a href="http://x/posts/Post1.html">Post1</a>' in html


def test_render_empty_folder_is_empty_string(tmp_path):
    write(tmp_path / "index.md", "home")
    assert make_indexer(tmp_path).render("missing") == ""


def test_bad_dates_are_reported_once_per_document(tmp_path):
    write(tmp_path / "posts" / "bad.md", '+++\ndate = "someday"\n+++\nx')
    indexer = make_indexer(tmp_path)
    indexer.index("posts")
    indexer.index("")
    indexer.authors()
    assert [error.source_path for error in indexer.skipped] == ["posts/bad.md"]


def test_author_and_tag_indexes_span_folders(tmp_path):
    write(
        tmp_path / "blog" / "one.md",
        '+++\ndate = 2024-01-01\nauthor = "Ann Lee"\ntags = ["Python", "web"]\n+++\nx',
    )
    write(tmp_path / "notes" / "two.md", '+++\ndate = 2023-01-01\nauthor = "ann lee"\ntags = "python"\n+++\nx')
    write(tmp_path / "notes" / "three.md", '+++\ndate = 2023-05-01\nauthor = "Bob"\n+++\nx')
    write(tmp_path / "page.md", '+++\nauthor = "Carol"\ntags = ["web"]\n+++\nx')
    indexer = make_indexer(tmp_path)

    assert indexer.authors() == ["Ann Lee", "Bob"]
    assert indexer.tags() == ["Python", "web"]

    by_ann = indexer.index_author("ANN LEE")
    assert [bucket.year for bucket in by_ann.years] == [2024, 2023]
    assert indexer.index_author("Ann Lee") is by_ann
    tagged = indexer.index_tag("python")
    assert [entry.source_path for bucket in tagged.years for entry in bucket.entries] == [
        "blog/one.md",
        "notes/two.md",
    ]
    assert not indexer.index_tag("missing")
    assert not indexer.index_author("Carol")


def test_entries_link_to_author_and_tag_archives(tmp_path):
    write(tmp_path / "posts" / "a.md", '+++\ndate = 2024-01-01\nauthor = "Ann Lee"\ntags = ["C++"]\n+++\nx')
    (bucket,) = make_indexer(tmp_path).index("posts").years
    entry = bucket.entries[0]
    assert entry.author == TermLink("Ann Lee", "http://x/authors/ann-lee/index.html")
    assert entry.tags == (TermLink("C++", "http://x/tags/c/index.html"),)


def test_default_author_applies_to_posts(tmp_path):
    write(tmp_path / "posts" / "a.md", "+++\ndate = 2024-01-01\n+++\nx")
    indexer = make_indexer(tmp_path, defaults={"author": "Site Author"})
    assert indexer.authors() == ["Site Author"]
    html = indexer.render("posts")
    assert 'by <a class="author" href="http://x/authors/site-author/index.html">Site Author</a>' in html


def test_archive_paths_use_slugs():
    assert author_path("Ann Lee") == "authors/ann-lee/index.html"
    assert tag_path("Static Sites!") == "tags/static-sites/index.html"
