"""
URL normalizer tests.
"""

import pytest

from tour_crawler.crawler.url_normalizer import normalize_url, same_host, url_host


BASE = "https://agency.example/tours/europe/index.html"


def test_strips_fragment_query_and_trailing_slash():
    assert normalize_url("https://agency.example/tour/paris/?ref=home#top") == \
        "https://agency.example/tour/paris"


def test_root_relative_resolves_against_base_origin():
    assert normalize_url("/tour/rome/", BASE) == "https://agency.example/tour/rome"


def test_root_relative_falls_back_to_seed():
    assert normalize_url("/tour/rome", seed_url="https://agency.example") == \
        "https://agency.example/tour/rome"


def test_relative_resolves_against_base_directory():
    assert normalize_url("paris.html", BASE) == "https://agency.example/tours/europe/paris.html"
    assert normalize_url("../asia/tokyo", BASE) == "https://agency.example/tours/asia/tokyo"


def test_protocol_relative_inherits_base_scheme():
    assert normalize_url("//cdn.example/img/", BASE) == "https://cdn.example/img"


def test_absolute_and_non_http_are_kept():
    assert normalize_url("http://other.example/a", BASE) == "http://other.example/a"
    assert normalize_url("mailto:sales@agency.example", BASE) == "mailto:sales@agency.example"


def test_empty_href_refers_to_base():
    assert normalize_url("#gallery", "https://agency.example/tour/paris?x=1") == \
        "https://agency.example/tour/paris"


def test_origin_keeps_scheme_separator():
    assert normalize_url("https://agency.example/") == "https://agency.example"


def test_unparsable_href_is_returned_unchanged():
    raw = "http://[::1"
    assert normalize_url(raw) == raw


@pytest.mark.parametrize("href,base", [
    ("https://agency.example/tour/paris/", None),
    ("/tour/paris//", BASE),
    ("paris.html?x=1#y", BASE),
    ("", BASE),
    ("//agency.example/a/", BASE),
    ("mailto:a@b.c", BASE),
    ("https://agency.example", None),
])
def test_normalization_is_idempotent(href, base):
    once = normalize_url(href, base)
    assert normalize_url(once) == once
    assert normalize_url(once, base) == once


def test_same_host():
    seed = "https://agency.example"
    assert same_host("https://agency.example/tour/a", seed)
    assert same_host("https://AGENCY.example/x", seed)
    assert not same_host("https://other.example/tour/a", seed)
    assert not same_host("https://agency.example:8080/a", seed)
    assert not same_host("mailto:sales@agency.example", seed)
    assert url_host("/relative/path") == ""
