"""Fetch a web page and inline it into one self-contained HTML document."""

__version__ = "0.1.0"
