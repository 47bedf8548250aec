"""
Main site mirror engine.

Orchestrates the crawl: depth-batched breadth-first traversal, page
rendering, asset downloading, link rewriting and saving.
"""

import asyncio
import json
import os
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional

from .assets import AssetPipeline
from .document import parse_html, serialize_html
from .downloader import AssetFetcher
from .frontier import CrawlScope, Frontier, FrontierSnapshot
from .renderer import PageRenderer
from .rewrite import LinkRewriter
from ..utils.constants import (
    BUNDLE_PREFIXES,
    DEFAULT_CONCURRENCY,
    DEFAULT_MAX_DEPTH,
    DEFAULT_OUTPUT_ROOT,
    DEFAULT_PACING_DELAY,
    DEFAULT_PAGE_TIMEOUT,
)
from ..utils.errors import NavigationError
from ..utils.log import get_logger, print_info, print_success
from ..utils.paths import (
    DEFAULT_PAGE_PATH,
    create_output_structure,
    normalize_url,
    url_to_local_path,
)
from ..utils.viewer import open_in_browser


class CrawlPhase(Enum):
    """Lifecycle of one mirror run."""

    IDLE = "idle"
    INITIALIZED = "initialized"
    CRAWLING = "crawling"
    CLOSED = "closed"


@dataclass
class MirrorResult:
    """Results of a mirror run."""

    visited: int = 0
    remaining: int = 0
    depth_reached: int = 0
    output_dir: str = ""
    entry_path: Optional[str] = None
    pages_saved: int = 0
    assets_downloaded: int = 0
    errors: List[Dict] = field(default_factory=list)
    duration_seconds: float = 0.0


class SiteMirror:
    """
    Mirrors one site into a browsable local directory.

    Pages are processed one depth level at a time: the whole queue is taken
    as a batch, rendered in windows of ``concurrency`` pages, and only then
    are the links that batch discovered looked at.
    """

    def __init__(
        self,
        url: str,
        output_root: str = DEFAULT_OUTPUT_ROOT,
        max_depth: int = DEFAULT_MAX_DEPTH,
        concurrency: int = DEFAULT_CONCURRENCY,
        pacing_delay: float = DEFAULT_PACING_DELAY,
        timeout: int = DEFAULT_PAGE_TIMEOUT,
        headless: bool = True,
        open_viewer: bool = True,
        bundle_prefixes: Iterable[str] = BUNDLE_PREFIXES,
        renderer: Optional[PageRenderer] = None,
        fetcher: Optional[AssetFetcher] = None
    ):
        """
        Initialize the site mirror.

        Args:
            url: Starting URL; its hostname is the crawl scope
            output_root: Directory that receives the {site_id}/ mirror
            max_depth: Number of depth batches to process
            concurrency: Pages rendered at the same time
            pacing_delay: Seconds to wait after each full window of pages
            timeout: Page render timeout in milliseconds
            headless: Run browser in headless mode
            open_viewer: Open the entry page in a browser when done
            bundle_prefixes: Path prefixes of framework build output
            renderer: Render collaborator (defaults to a PageRenderer)
            fetcher: Fetch collaborator (defaults to an AssetFetcher)

        Raises:
            InvalidUrlError: If the starting URL cannot be parsed
        """
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")

        self.phase = CrawlPhase.IDLE
        self.scope = CrawlScope.from_url(url, output_root)
        self.max_depth = max_depth
        self.concurrency = concurrency
        self.pacing_delay = pacing_delay
        self.open_viewer = open_viewer

        self.logger = get_logger("crawler")

        self.renderer = renderer or PageRenderer(timeout=timeout, headless=headless)
        self.fetcher = fetcher or AssetFetcher()
        self.frontier = Frontier(self.scope)
        self.assets = AssetPipeline(self.scope, self.fetcher)
        self.rewriter = LinkRewriter(self.scope, self.frontier, bundle_prefixes)

        self._url_to_file: Dict[str, str] = {}
        self._errors: List[Dict] = []
        self.phase = CrawlPhase.INITIALIZED

    @property
    def url_to_file(self) -> Dict[str, str]:
        """Mapping of saved page URL to its path inside the mirror."""
        return dict(self._url_to_file)

    async def mirror(self) -> MirrorResult:
        """
        Crawl the site up to max_depth levels and save everything.

        Returns:
            MirrorResult with statistics
        """
        start_time = time.time()
        start_url = self.scope.start_url

        print_info(f"Starting mirror of {start_url}")
        print_info(f"Domain: {self.scope.root_domain}, max depth: {self.max_depth}")
        print_info(f"Saving to: {self.scope.output_dir}")

        create_output_structure(self.scope.output_dir)

        depth = 0
        try:
            async with self.renderer, self.fetcher:
                self.phase = CrawlPhase.CRAWLING
                while self.frontier.pending and depth < self.max_depth:
                    batch = self.frontier.take_batch()
                    self.logger.info(f"Processing depth {depth + 1} ({len(batch)} URLs)")
                    await self._process_batch(batch)
                    depth += 1
        finally:
            self.phase = CrawlPhase.CLOSED

        result = self._build_result(depth, time.time() - start_time)
        self._generate_sitemap(result)
        self._generate_error_log()

        print_success(
            f"Mirror complete! {result.visited} URLs visited, "
            f"{result.remaining} left in queue, depth {result.depth_reached}"
        )

        if self.open_viewer and result.entry_path:
            open_in_browser(result.entry_path)

        return result

    async def mirror_page(self, url: Optional[str] = None) -> MirrorResult:
        """
        Mirror a single page with its assets, without following links.

        Args:
            url: Page to mirror (defaults to the starting URL)

        Returns:
            MirrorResult for the single page
        """
        start_time = time.time()
        url = normalize_url(url) if url else self.scope.start_url
        create_output_structure(self.scope.output_dir)

        try:
            async with self.renderer, self.fetcher:
                self.phase = CrawlPhase.CRAWLING
                await self._process_page(url)
        finally:
            self.phase = CrawlPhase.CLOSED

        result = self._build_result(1, time.time() - start_time, entry_url=url)
        if self.open_viewer and result.entry_path:
            open_in_browser(result.entry_path)
        return result

    async def _process_batch(self, batch: List[str]) -> None:
        """Process one depth level in windows of ``concurrency`` pages."""
        for start in range(0, len(batch), self.concurrency):
            window = batch[start:start + self.concurrency]
            tasks = [asyncio.ensure_future(self._process_page(url)) for url in window]
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)

            # Siblings of a crashed page must not outlive the renderer
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
            for task in done:
                task.result()

            if len(window) == self.concurrency and self.pacing_delay > 0:
                await asyncio.sleep(self.pacing_delay)

    async def _process_page(self, url: str) -> bool:
        """
        Render, rewrite and save a single page.

        Returns:
            True if the page was saved
        """
        if not self.frontier.mark_visited(url):
            self.logger.debug(f"Already visited: {url}")
            return False

        self.logger.info(f"Mirroring: {url}")

        try:
            html = await self.renderer.render_page(url)
        except NavigationError as e:
            self.logger.warning(str(e))
            self._record_error(url, e.reason, 'render_error')
            return False

        soup = parse_html(html)
        await self.assets.process(soup, url)
        queued = self.rewriter.rewrite(soup, url)
        if queued:
            self.logger.debug(f"{queued} new URLs from {url}")

        local_path = url_to_local_path(url, self.scope.root_url) or DEFAULT_PAGE_PATH
        file_path = os.path.join(self.scope.output_dir, *local_path.split('/'))

        try:
            self.fetcher.write_page(serialize_html(soup), file_path)
        except OSError as e:
            self.logger.error(f"Error saving page {url}: {e}")
            self._record_error(url, str(e), 'save_error')
            return False

        self._url_to_file[url] = local_path
        self.logger.info(f"Saved HTML: {local_path}")
        return True

    def _record_error(self, url: str, error: str, error_type: str) -> None:
        self._errors.append({
            'url': url,
            'error': error,
            'type': error_type
        })

    def _build_result(
        self,
        depth: int,
        duration: float,
        entry_url: Optional[str] = None
    ) -> MirrorResult:
        entry_url = entry_url or self.scope.start_url
        entry_local = self._url_to_file.get(entry_url)
        entry_path = None
        if entry_local:
            entry_path = os.path.join(self.scope.output_dir, *entry_local.split('/'))

        return MirrorResult(
            visited=self.frontier.visited_count,
            remaining=self.frontier.pending,
            depth_reached=depth,
            output_dir=self.scope.output_dir,
            entry_path=entry_path,
            pages_saved=len(self._url_to_file),
            assets_downloaded=self.assets.downloaded,
            errors=list(self._errors),
            duration_seconds=duration,
        )

    def _generate_sitemap(self, result: MirrorResult) -> None:
        """Write sitemap.json with every saved page and its local file."""
        sitemap_path = os.path.join(self.scope.output_dir, 'sitemap.json')

        sitemap_data = {
            'start_url': self.scope.start_url,
            'domain': self.scope.root_domain,
            'visited': result.visited,
            'remaining': result.remaining,
            'depth_reached': result.depth_reached,
            'total_assets': result.assets_downloaded,
            'pages': dict(sorted(self._url_to_file.items())),
        }

        with open(sitemap_path, 'w', encoding='utf-8') as f:
            json.dump(sitemap_data, f, indent=2, ensure_ascii=False)

        self.logger.info(f"Generated sitemap: {sitemap_path}")

    def _generate_error_log(self) -> None:
        """Write errors.json if anything went wrong."""
        if not self._errors:
            return

        errors_path = os.path.join(self.scope.output_dir, 'errors.json')

        with open(errors_path, 'w', encoding='utf-8') as f:
            json.dump(self._errors, f, indent=2, ensure_ascii=False)

        self.logger.info(f"Generated error log: {errors_path}")

    def state(self) -> FrontierSnapshot:
        """Current crawl state."""
        return self.frontier.snapshot()

    def reset(self) -> None:
        """Discard all progress so the mirror can run again from the start."""
        self.frontier.reset()
        self._url_to_file.clear()
        self._errors.clear()
        self.assets.downloaded = 0
        self.assets.failed.clear()
        self.phase = CrawlPhase.INITIALIZED
