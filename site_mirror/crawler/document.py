"""
HTML document helpers.

Pages are parsed with BeautifulSoup and mutated in place by the asset
pipeline and the link rewriter before being serialized back to disk.
"""

import re

from bs4 import BeautifulSoup, FeatureNotFound


HTML_OPEN_TAG = re.compile(r'(<html\b[^>]*>)', re.IGNORECASE)


def parse_html(html: str) -> BeautifulSoup:
    """Parse rendered HTML into a mutable document."""
    try:
        return BeautifulSoup(html, 'lxml')
    except FeatureNotFound:
        return BeautifulSoup(html, 'html.parser')


def serialize_html(soup: BeautifulSoup) -> str:
    """
    Serialize a document for saving.

    The result always starts with a doctype declaration, and the opening
    <html> tag is followed by a newline.
    """
    html = str(soup)
    if not html.lstrip().lower().startswith('<!doctype'):
        html = '<!DOCTYPE html>\n' + html
    return HTML_OPEN_TAG.sub(r'\1\n', html, count=1)
