"""
Lexical rewriting of url(...) references in CSS text.

No stylesheet object model is built: url() tokens and quoted @import targets
are matched with regular expressions and everything else passes through as-is.
"""

import re

from inliner.urls import normalize


# url( + optional whitespace + optional quote ... same quote + optional whitespace + )
CSS_URL_RE = re.compile(r"""(url\(\s*)(['"]?)(.*?)\2(\s*\))""", re.IGNORECASE)
CSS_IMPORT_RE = re.compile(r"""(@import\s+)(['"])(.*?)\2""", re.IGNORECASE)


def rewrite_css_urls(css_text: str | None, base: str) -> str:
    """Make every url() and @import reference in ``css_text`` absolute against ``base``."""
    if not css_text:
        return ""

    def _replace(match: re.Match) -> str:
        prefix, quote, path, suffix = match.groups()
        return f"{prefix}{quote}{normalize(path, base)}{quote}{suffix}"

    css_text = CSS_URL_RE.sub(_replace, css_text)
    return CSS_IMPORT_RE.sub(
        lambda m: f"{m.group(1)}{m.group(2)}{normalize(m.group(3), base)}{m.group(2)}",
        css_text,
    )
