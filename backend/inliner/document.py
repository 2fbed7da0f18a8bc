"""
In-place passes over a parsed page.

All functions here mutate a BeautifulSoup tree and never touch the network.
The orchestrator in scraper.py decides the order and owns the stylesheet
<link> elements; rewrite_resource_attributes skips them for that reason.
"""

import re

from bs4 import BeautifulSoup, Tag
from bs4.dammit import EntitySubstitution
from bs4.element import Doctype, Stylesheet
from bs4.formatter import HTMLFormatter

from inliner.css import rewrite_css_urls
from inliner.urls import normalize


RESOURCE_ATTRIBUTES = ("src", "href", "poster")
STRIPPED_ATTRIBUTES = ("integrity", "crossorigin")

# srcset grammar: a URL is a run of non-whitespace; descriptors run to the next comma
_SRCSET_URL_RE = re.compile(r"[\s,]*(\S+)")
_SRCSET_DESCRIPTORS_RE = re.compile(r"([^,]*),?")

# Same escaping as the "minimal" formatter, but void elements render as <base href="...">
HTML5_FORMATTER = HTMLFormatter(
    entity_substitution=EntitySubstitution.substitute_xml,
    void_element_close_prefix=None,
)


# ---------------------------------------------------------------------------
# Parsing / serialization
# ---------------------------------------------------------------------------

def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def serialize(soup: BeautifulSoup) -> str:
    return soup.decode(formatter=HTML5_FORMATTER)


def page_title(soup: BeautifulSoup) -> str | None:
    if soup.title is None:
        return None
    return soup.title.get_text(strip=True) or None


# ---------------------------------------------------------------------------
# Attribute passes
# ---------------------------------------------------------------------------

def is_stylesheet_link(el: Tag) -> bool:
    if el.name != "link":
        return False
    rel = el.get("rel") or []
    if isinstance(rel, str):
        rel = rel.split()
    return "stylesheet" in (token.lower() for token in rel)


def rewrite_resource_attributes(soup: BeautifulSoup, base: str) -> int:
    """Absolutize src/href/poster on every element except stylesheet links."""
    rewritten = 0
    for el in soup.find_all(True):
        if is_stylesheet_link(el):
            continue
        for attr in RESOURCE_ATTRIBUTES:
            value = el.get(attr)
            if value:
                el[attr] = normalize(value, base)
                rewritten += 1
    return rewritten


def rewrite_srcset_value(srcset: str, base: str) -> str:
    """
    Absolutize the URL of each srcset candidate, keeping its descriptors.

    "a.jpg 1x, b.jpg 2x" -> "https://ex.com/a.jpg 1x, https://ex.com/b.jpg 2x"
    """
    candidates = []
    position = 0
    while position < len(srcset):
        match = _SRCSET_URL_RE.match(srcset, position)
        if not match:
            break
        url = match.group(1)
        position = match.end()
        descriptors = ""
        if url.endswith(","):
            url = url.rstrip(",")
        else:
            desc_match = _SRCSET_DESCRIPTORS_RE.match(srcset, position)
            descriptors = " ".join(desc_match.group(1).split())
            position = desc_match.end()
        if not url:
            continue
        candidate = normalize(url, base)
        if descriptors:
            candidate = f"{candidate} {descriptors}"
        candidates.append(candidate)
    return ", ".join(candidates)


def rewrite_srcset(soup: BeautifulSoup, base: str) -> int:
    rewritten = 0
    for el in soup.find_all(srcset=True):
        srcset = el.get("srcset")
        if srcset:
            el["srcset"] = rewrite_srcset_value(srcset, base)
            rewritten += 1
    return rewritten


def rewrite_inline_styles(soup: BeautifulSoup, base: str) -> int:
    rewritten = 0
    for el in soup.find_all(style=True):
        style = el.get("style")
        if style and "url(" in style.lower():
            el["style"] = rewrite_css_urls(style, base)
            rewritten += 1
    return rewritten


def strip_integrity(soup: BeautifulSoup) -> None:
    # SRI hashes and CORS modes stop matching once URLs are rewritten
    for el in soup.find_all(True):
        for attr in STRIPPED_ATTRIBUTES:
            el.attrs.pop(attr, None)


def ensure_head(soup: BeautifulSoup) -> Tag:
    """Return <head>, creating it the way an HTML5 parser would if the page has none."""
    head = soup.find("head")
    if head is not None:
        return head
    head = soup.new_tag("head")
    if soup.html is not None:
        soup.html.insert(0, head)
    else:
        position = 0
        for index, node in enumerate(soup.contents):
            if isinstance(node, Doctype):
                position = index + 1
        soup.insert(position, head)
    return head


def inject_base(soup: BeautifulSoup, url: str) -> Tag:
    """Prepend <base href=url> to <head>, as a fallback for anything the passes missed."""
    base = soup.new_tag("base", href=url)
    ensure_head(soup).insert(0, base)
    return base


def rewrite_document(soup: BeautifulSoup, base: str) -> None:
    """Run every attribute pass, strip integrity metadata and inject <base>."""
    rewrite_resource_attributes(soup, base)
    rewrite_srcset(soup, base)
    rewrite_inline_styles(soup, base)
    strip_integrity(soup)
    inject_base(soup, base)


# ---------------------------------------------------------------------------
# Stylesheet links
# ---------------------------------------------------------------------------

def find_stylesheet_links(soup: BeautifulSoup) -> list[Tag]:
    return [
        el for el in soup.find_all("link")
        if is_stylesheet_link(el) and (el.get("href") or "").strip()
    ]


def inline_stylesheet(soup: BeautifulSoup, link: Tag, url: str, css: str) -> Tag:
    """Replace ``link`` with a <style> holding ``css``, tagged with its source URL."""
    style = soup.new_tag("style")
    if link.get("media"):
        style["media"] = link["media"]
    style.append(Stylesheet(f"/* {url} */\n{css}"))
    link.replace_with(style)
    return style


def degrade_stylesheet(link: Tag, url: str) -> None:
    link["href"] = url
