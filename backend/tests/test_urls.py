import pytest

from inliner.urls import ensure_scheme, normalize


BASE = "https://ex.com/dir/page.html"


@pytest.mark.parametrize("url", [
    "https://ex.com/a.png",
    "http://other.org/x/y?z=1#frag",
    "HTTPS://EX.COM/UPPER.PNG",
])
def test_absolute_urls_are_unchanged(url):
    assert normalize(url, BASE) == url


@pytest.mark.parametrize("ref", [
    "",
    "#frag",
    "data:image/png;base64,AAAA",
    "mailto:x@y.com",
    "tel:123",
    "javascript:void(0)",
    "//host/path",
])
def test_passthrough_references(ref):
    assert normalize(ref, BASE) == ref


def test_none_passes_through():
    assert normalize(None, BASE) is None


def test_relative_resolution():
    assert normalize("images/a.png", BASE) == "https://ex.com/dir/images/a.png"
    assert normalize("/static/a.css", BASE) == "https://ex.com/static/a.css"
    assert normalize("../up.png", BASE) == "https://ex.com/up.png"
    assert normalize("?page=2", BASE) == "https://ex.com/dir/page.html?page=2"


def test_surrounding_whitespace_is_ignored():
    assert normalize("  images/a.png\n", BASE) == "https://ex.com/dir/images/a.png"


def test_fail_closed_on_malformed_input():
    assert normalize(":::not a url", BASE) == ":::not a url"
    assert normalize(":relative", BASE) == ":relative"


def test_legal_punctuation_is_resolved_verbatim():
    assert normalize("O'Brien_(band)", "https://ex.com/wiki/page") == "https://ex.com/wiki/O'Brien_(band)"
    assert normalize("a.png?x=1&y=%20#top", BASE) == "https://ex.com/dir/a.png?x=1&y=%20#top"


@pytest.mark.parametrize("ref, expected", [
    ("img/photo 1.jpg", "https://ex.com/dir/img/photo%201.jpg"),
    ("say \"hi\".png", "https://ex.com/dir/say%20%22hi%22.png"),
    ("<b>.png", "https://ex.com/dir/%3Cb%3E.png"),
    ("caf\u00e9.png", "https://ex.com/dir/caf%C3%A9.png"),
    ("img/a\n.png", "https://ex.com/dir/img/a.png"),
])
def test_unsafe_characters_are_percent_encoded(ref, expected):
    assert normalize(ref, BASE) == expected


def test_ensure_scheme():
    assert ensure_scheme(" ex.com ") == "https://ex.com"
    assert ensure_scheme("http://ex.com") == "http://ex.com"
    assert ensure_scheme("HTTPS://ex.com") == "HTTPS://ex.com"
    assert ensure_scheme("   ") == ""
