"""
Crawl frontier: scope, visited set, and the pending queue.

Concurrent page tasks all report discovered links here, so every
read-modify-write of the visited set and queue happens under one lock.
"""

import os
import threading
from dataclasses import dataclass, field
from typing import List, Set
from urllib.parse import urlparse, urlunparse

from ..utils.constants import DEFAULT_OUTPUT_ROOT, NON_PAGE_EXTENSIONS
from ..utils.errors import InvalidUrlError
from ..utils.log import get_logger
from ..utils.paths import is_same_domain, normalize_url


@dataclass(frozen=True)
class CrawlScope:
    """Immutable per-crawl configuration derived from the starting URL."""

    start_url: str
    root_url: str
    root_domain: str
    site_id: str
    output_dir: str

    @classmethod
    def from_url(cls, url: str, output_root: str = DEFAULT_OUTPUT_ROOT) -> "CrawlScope":
        """
        Derive the crawl scope from a starting URL.

        Args:
            url: Starting URL
            output_root: Directory that holds one sub-directory per site

        Returns:
            CrawlScope for the URL

        Raises:
            InvalidUrlError: If the URL has no http(s) scheme or no host
        """
        try:
            parsed = urlparse(normalize_url(url.strip()))
            hostname = parsed.hostname
        except (AttributeError, ValueError) as e:
            raise InvalidUrlError(str(url), str(e)) from e

        if parsed.scheme not in ("http", "https"):
            raise InvalidUrlError(url, "scheme must be http or https")
        if not hostname:
            raise InvalidUrlError(url, "missing host")

        site_id = hostname.split(".")[0]
        return cls(
            start_url=urlunparse(parsed),
            root_url=f"{parsed.scheme}://{parsed.netloc}",
            root_domain=hostname,
            site_id=site_id,
            output_dir=os.path.abspath(os.path.join(output_root, site_id)),
        )


@dataclass
class FrontierSnapshot:
    """Point-in-time copy of the crawl state."""

    visited_urls: List[str] = field(default_factory=list)
    queued_urls: List[str] = field(default_factory=list)
    root_url: str = ""
    root_domain: str = ""
    output_dir: str = ""
    site_id: str = ""


class Frontier:
    """
    Tracks which URLs have been visited and which are waiting.

    A URL is queued at most once and the visited set only grows. The queue
    keeps insertion order; the engine drains it one depth level at a time
    with take_batch().
    """

    def __init__(self, scope: CrawlScope):
        self.scope = scope
        self.logger = get_logger("frontier")
        self._lock = threading.Lock()
        self._visited: Set[str] = set()
        self._queue: List[str] = []
        self._queued: Set[str] = set()
        self._seed()

    def _seed(self) -> None:
        self._queue.append(self.scope.start_url)
        self._queued.add(self.scope.start_url)

    def in_scope(self, url: str) -> bool:
        """True iff the URL's hostname is the crawl's root domain."""
        return is_same_domain(url, self.scope.root_domain)

    @staticmethod
    def should_enqueue(url: str) -> bool:
        """
        Decide whether a URL can be crawled as a page.

        Binary, media, style and script files are handled as assets;
        fragment links, mailto: and tel: are not pages at all.
        """
        if "#" in url or "mailto:" in url or "tel:" in url:
            return False
        try:
            path = urlparse(url).path.lower()
        except ValueError:
            return False
        extension = path.rsplit(".", 1)[-1] if "." in path.rsplit("/", 1)[-1] else ""
        return extension not in NON_PAGE_EXTENSIONS

    def enqueue(self, url: str) -> bool:
        """
        Add a URL to the queue.

        Returns:
            True if the URL was queued, False if it was already known,
            out of scope, or not a crawlable page
        """
        if not self.in_scope(url) or not self.should_enqueue(url):
            return False
        with self._lock:
            if url in self._visited or url in self._queued:
                return False
            self._queue.append(url)
            self._queued.add(url)
        self.logger.debug(f"Queued: {url}")
        return True

    def mark_visited(self, url: str) -> bool:
        """
        Record a URL as visited.

        Returns:
            True if this call claimed the URL, False if it was already visited
        """
        with self._lock:
            self._queued.discard(url)
            if url in self._visited:
                return False
            self._visited.add(url)
            return True

    def is_visited(self, url: str) -> bool:
        with self._lock:
            return url in self._visited

    def is_queued(self, url: str) -> bool:
        with self._lock:
            return url in self._queued

    def take_batch(self) -> List[str]:
        """
        Remove and return everything currently queued (one depth level).

        Batch URLs still count as queued until they are marked visited, so
        pages in the same batch cannot queue them a second time.
        """
        with self._lock:
            batch = self._queue[:]
            self._queue.clear()
        return batch

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._queue)

    @property
    def visited_count(self) -> int:
        with self._lock:
            return len(self._visited)

    def snapshot(self) -> FrontierSnapshot:
        """Copy the current state for inspection."""
        with self._lock:
            return FrontierSnapshot(
                visited_urls=sorted(self._visited),
                queued_urls=list(self._queue),
                root_url=self.scope.root_url,
                root_domain=self.scope.root_domain,
                output_dir=self.scope.output_dir,
                site_id=self.scope.site_id,
            )

    def reset(self) -> None:
        """Forget all progress and re-seed the starting URL."""
        with self._lock:
            self._visited.clear()
            self._queue.clear()
            self._queued.clear()
            self._seed()
