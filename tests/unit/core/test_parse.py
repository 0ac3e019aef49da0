"""Unit tests for core/parse.py"""

from datetime import date, datetime

import pytest

from mdsite.core.parse import (
    discover_files,
    output_path_for,
    parse_date,
    parse_file,
    split_front_matter,
)
from mdsite.errors import ContentItemError, FrontMatterParseError, InvalidDateError, InvalidPermalinkError


# --- split_front_matter ---

def test_split_front_matter_with_yaml():
    """split_front_matter extracts the YAML header and returns the body."""
    fm, body = split_front_matter("---\ntitle: Hello\n---\n# Body\n")
    assert fm == {"title": "Hello"}
    assert body == "# Body\n"


def test_split_front_matter_none():
    """Text without a leading --- block is all body."""
    text = "# No front matter\n"
    assert split_front_matter(text) == ({}, text)


def test_split_front_matter_empty_block():
    fm, body = split_front_matter("---\n---\nBody\n")
    assert fm == {}
    assert body == "Body\n"


def test_split_front_matter_at_end_of_file():
    """A closing --- without a trailing newline still ends the block."""
    fm, body = split_front_matter("---\ntitle: Only\n---")
    assert fm == {"title": "Only"}
    assert body == ""


def test_split_front_matter_keeps_unknown_keys():
    fm, _ = split_front_matter("---\ntitle: T\nauthor: me\n---\nx\n")
    assert fm["author"] == "me"


def test_split_front_matter_invalid_yaml_names_file():
    with pytest.raises(FrontMatterParseError, match="posts/bad.md"):
        split_front_matter("---\ntitle: [unclosed\n---\nBody\n", "posts/bad.md")


def test_split_front_matter_non_mapping():
    with pytest.raises(FrontMatterParseError, match="mapping"):
        split_front_matter("---\n- a\n- b\n---\nBody\n", "list.md")


def test_split_front_matter_keeps_dates_as_text():
    """Timestamps are left for parse_date, so an impossible date is not a YAML error."""
    fm, _ = split_front_matter("---\ndate: 2024-13-45\nupdated: 2024-01-02\n---\n")
    assert fm == {"date": "2024-13-45", "updated": "2024-01-02"}


def test_split_front_matter_bad_explicit_timestamp():
    with pytest.raises(FrontMatterParseError, match="when.md"):
        split_front_matter("---\ndate: !!timestamp 2024-13-45\n---\n", "when.md")


# --- parse_date ---

@pytest.mark.parametrize("value,expected", [
    (date(2024, 1, 2),                   date(2024, 1, 2)),
    (datetime(2024, 1, 2, 10, 30),       date(2024, 1, 2)),
    ("2024-01-02",                       date(2024, 1, 2)),
    ("2024-01-02T10:30:00",              date(2024, 1, 2)),
    ("2024-01-02 10:30:00 +0100",        date(2024, 1, 2)),
    ("2024-01-02 10:30",                 date(2024, 1, 2)),
])
def test_parse_date_accepts(value, expected):
    assert parse_date(value) == expected


@pytest.mark.parametrize("value", [None, ""])
def test_parse_date_absent(value):
    assert parse_date(value) is None


@pytest.mark.parametrize("value", ["not-a-date", "2024-13-45", 2024])
def test_parse_date_rejects(value):
    with pytest.raises(InvalidDateError, match="unparseable date"):
        parse_date(value, "post.md")


# --- output_path_for ---

@pytest.mark.parametrize("rel,fm,expected", [
    ("post-a.md",              {},                            "post-a.html"),
    ("posts/Hello World.md",   {},                            "posts/hello-world.html"),
    ("about.md",               {"permalink": "/about/"},      "about/index.html"),
    ("about.md",               {"permalink": "/me"},          "me.html"),
    ("feed.md",                {"permalink": "/feed.xml"},    "feed.xml"),
    ("home.md",                {"permalink": "/"},            "index.html"),
    ("about.md",               {"permalink": "a/./b/../c/"}, "a/c/index.html"),
])
def test_output_path_for(rel, fm, expected):
    assert output_path_for(rel, fm) == expected


@pytest.mark.parametrize("permalink", ["../../escaped.html", "/../x.html", "posts/../../x.html", ".."])
def test_output_path_for_rejects_escaping_permalink(permalink):
    with pytest.raises(InvalidPermalinkError, match="evil.md"):
        output_path_for("evil.md", {"permalink": permalink})


# --- discover_files ---

def test_discover_files_splits_content_and_assets(source, write):
    write("a.md", "a")
    write("sub/b.markdown", "b")
    write("css/site.css", "body{}")
    content, assets = discover_files(source, [".md", ".markdown"])
    assert [p.name for p in content] == ["a.md", "b.markdown"]
    assert [p.name for p in assets] == ["site.css"]


def test_discover_files_skips_hidden_and_layouts(source, write):
    write(".git/config", "x")
    write("_layouts/post.html", "{{ content }}")
    write("a.md", "a")
    content, assets = discover_files(source, [".md"])
    assert [p.name for p in content] == ["a.md"]
    assert assets == []


def test_discover_files_skips_excluded_dirs(source, write):
    write("a.md", "a")
    write("_site/a.html", "old output")
    content, assets = discover_files(source, [".md"], exclude=[source / "_site"])
    assert assets == []
    assert len(content) == 1


def test_discover_files_extension_case_insensitive(source, write):
    write("UPPER.MD", "x")
    content, _ = discover_files(source, [".md"])
    assert len(content) == 1


# --- parse_file ---

def test_parse_file_builds_item(source, post):
    p = post("posts/first.md", title="First", date="2024-01-02", tags="[a, b]")
    item = parse_file(p, source)
    assert item.path == "posts/first.md"
    assert item.title == "First"
    assert item.date == date(2024, 1, 2)
    assert item.tags == ["a", "b"]
    assert item.output_path == "posts/first.html"
    assert item.listable
    assert "---" not in item.body


def test_parse_file_bad_date_is_not_fatal(source, post):
    p = post("odd.md", title="Odd", date="not-a-date")
    item = parse_file(p, source)
    assert item.date is None
    assert not item.listable
    assert isinstance(item.date_error, InvalidDateError)


def test_parse_file_missing_title_not_listable(source, post):
    item = parse_file(post("untitled.md", date="2024-01-01"), source)
    assert item.date == date(2024, 1, 1)
    assert not item.listable
    assert item.date_error is None


def test_parse_file_malformed_front_matter(source, write):
    p = write("bad.md", "---\ntitle: [oops\n---\nBody\n")
    with pytest.raises(FrontMatterParseError, match="bad.md"):
        parse_file(p, source)


def test_parse_file_not_utf8(source):
    p = source / "latin.md"
    p.write_bytes("caf\xe9".encode("latin-1"))
    with pytest.raises(ContentItemError, match="unreadable"):
        parse_file(p, source)


def test_parse_file_space_separated_tags(source, post):
    item = parse_file(post("t.md", title="T", tags="python blog"), source)
    assert item.tags == ["python", "blog"]


def test_parse_file_out_of_range_date(source, post):
    item = parse_file(post("late.md", title="Late", date="2024-13-45"), source)
    assert item.date is None
    assert item.date_error.path == "late.md"
    assert "2024-13-45" in str(item.date_error)


@pytest.mark.parametrize("key,value,match", [
    ("tags",      "5",                  "tags"),
    ("tags",      "{a: 1}",             "tags"),
    ("tags",      "[a, [b]]",           "tags"),
    ("layout",    "[a, b]",             "layout"),
    ("layout",    "3",                  "layout"),
    ("title",     "{first: x}",         "title"),
    ("permalink", "[x]",                "permalink"),
])
def test_parse_file_mistyped_front_matter(source, post, key, value, match):
    p = post("typed.md", title="T", **{key: value})
    with pytest.raises(FrontMatterParseError, match=match):
        parse_file(p, source)


def test_parse_file_numeric_title_and_tags(source, post):
    item = parse_file(post("n.md", title="1984", tags="[2024, py]"), source)
    assert item.title == "1984"
    assert item.tags == ["2024", "py"]


def test_parse_file_escaping_permalink(source, post):
    with pytest.raises(InvalidPermalinkError, match="out.md"):
        parse_file(post("out.md", title="Out", permalink="../../escaped.html"), source)
