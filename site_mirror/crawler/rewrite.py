"""
Link rewriter for converting page links to local relative paths.

Discovers in-scope anchors, hands new ones to the frontier, and points
every in-scope link at the mirrored copy of its target.
"""

import posixpath
from typing import Iterable
from urllib.parse import urljoin, urldefrag, urlparse

from bs4 import BeautifulSoup

from .frontier import CrawlScope, Frontier
from ..utils.constants import BUNDLE_PREFIXES
from ..utils.log import get_logger
from ..utils.paths import DEFAULT_PAGE_PATH, normalize_url, relative_path, url_to_local_path


class LinkRewriter:
    """
    Rewrites anchors and bundle references in a rendered page.

    Holds no state of its own between pages; discovered links go straight
    into the frontier.
    """

    BUNDLE_SELECTOR = "link[rel~=stylesheet], script[src], link[rel~=preload]"

    def __init__(
        self,
        scope: CrawlScope,
        frontier: Frontier,
        bundle_prefixes: Iterable[str] = BUNDLE_PREFIXES
    ):
        """
        Initialize the link rewriter.

        Args:
            scope: Crawl scope
            frontier: Frontier that receives discovered links
            bundle_prefixes: Path prefixes of framework build output
        """
        self.scope = scope
        self.frontier = frontier
        self.bundle_prefixes = tuple(bundle_prefixes)
        self.logger = get_logger("rewriter")

    def rewrite(self, soup: BeautifulSoup, page_url: str) -> int:
        """
        Run every rewriting pass over a page.

        Args:
            soup: Parsed page, modified in place
            page_url: URL the page was rendered from

        Returns:
            Number of URLs newly queued from this page
        """
        queued = self.rewrite_links(soup, page_url)
        self.fix_root_relative_links(soup)
        self.flatten_bundle_paths(soup)
        return queued

    def rewrite_links(self, soup: BeautifulSoup, page_url: str) -> int:
        """Queue in-scope anchor targets and point them at local files."""
        root_url = self.scope.root_url
        current_page_path = url_to_local_path(page_url, root_url) or DEFAULT_PAGE_PATH
        queued = 0

        for anchor in soup.select("a[href]"):
            href = anchor.get("href", "").strip()

            # In-page anchors already work offline
            if not href or href.startswith("#"):
                continue

            try:
                absolute_url = normalize_url(urljoin(page_url, href))
                target, fragment = urldefrag(absolute_url)
            except ValueError:
                continue

            if not self.frontier.in_scope(absolute_url):
                continue

            if self.frontier.enqueue(absolute_url):
                queued += 1
                self.logger.debug(f"Queued: {absolute_url}")

            if url_to_local_path(target, root_url) is None:
                continue

            new_href = relative_path(current_page_path, target, root_url)
            if fragment:
                new_href = f"{new_href}#{fragment}"
            anchor["href"] = new_href

        return queued

    def fix_root_relative_links(self, soup: BeautifulSoup) -> None:
        """
        Map root-relative hrefs that survived rewrite_links.

        ``/docs`` becomes ``{site_id}/docs_index.html`` and ``/`` becomes
        ``index_index.html``. Protocol-relative ``//host`` hrefs are left alone.
        """
        for anchor in soup.select("a[href]"):
            href = anchor.get("href", "")
            if href == "/":
                anchor["href"] = "index_index.html"
            elif href.startswith("/") and not href.startswith("//"):
                anchor["href"] = f"{self.scope.site_id}/{href[1:]}_index.html"

    def flatten_bundle_paths(self, soup: BeautifulSoup) -> None:
        """Point framework bundle references at assets/{basename}."""
        if not self.bundle_prefixes:
            return

        for element in soup.select(self.BUNDLE_SELECTOR):
            for attribute in ("href", "src"):
                value = element.get(attribute)
                if value and value.startswith(self.bundle_prefixes):
                    basename = posixpath.basename(urlparse(value).path)
                    element[attribute] = f"assets/{basename}"
