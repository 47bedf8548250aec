"""Tests for the depth-batched mirror engine."""

import asyncio
import json
import os
from unittest.mock import AsyncMock, patch

import pytest

from site_mirror.crawler.crawler import CrawlPhase, SiteMirror
from site_mirror.utils.errors import InvalidUrlError

from tests.conftest import FakeFetcher, FakeRenderer


class CountingRenderer(FakeRenderer):
    """Tracks how many renders are in flight at once."""

    def __init__(self, pages, crash_on=()):
        super().__init__(pages, crash_on)
        self.in_flight = 0
        self.max_in_flight = 0

    async def render_page(self, url):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            return await super().render_page(url)
        finally:
            self.in_flight -= 1


class BlockingRenderer(FakeRenderer):
    """Never finishes rendering the URLs in ``block``."""

    def __init__(self, pages, crash_on=(), block=()):
        super().__init__(pages, crash_on)
        self.block = set(block)
        self.blocked = set()
        self.blocked_at_stop = None

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.blocked_at_stop = set(self.blocked)
        await super().__aexit__(exc_type, exc_val, exc_tb)

    async def render_page(self, url):
        if url not in self.block:
            await asyncio.sleep(0)
            return await super().render_page(url)
        self.rendered.append(url)
        self.blocked.add(url)
        try:
            await asyncio.Event().wait()
        finally:
            self.blocked.discard(url)


ROOT = "https://x.test/"

SITE = {
    "https://x.test/": """<!DOCTYPE html>
<html><head>
  <link rel="stylesheet" href="/css/style.css">
  <script src="/js/app.js"></script>
</head><body>
  <img src="/img/logo.png">
  <a href="/about">About</a>
  <a href="/blog/">Blog</a>
  <a href="https://elsewhere.test/">Out</a>
</body></html>""",
    "https://x.test/about": """<html><head>
  <link rel="stylesheet" href="/css/style.css">
</head><body>
  <a href="/team">Team</a>
  <a href="/">Home</a>
</body></html>""",
    "https://x.test/blog/": """<html><body>
  <img src="/img/logo.png">
  <a href="/blog/post">Post</a>
</body></html>""",
    "https://x.test/team": "<html><body><a href='/'>Home</a></body></html>",
    "https://x.test/blog/post": "<html><body><a href='/about'>About</a></body></html>",
}

ASSETS = {
    "https://x.test/css/style.css": b"body{}",
    "https://x.test/js/app.js": b"console.log(1)",
    "https://x.test/img/logo.png": b"\x89PNG",
}


def make_mirror(tmp_path, pages=None, assets=None, **kwargs):
    kwargs.setdefault("pacing_delay", 0)
    kwargs.setdefault("open_viewer", False)
    renderer = FakeRenderer(SITE if pages is None else pages, kwargs.pop("crash_on", ()))
    fetcher = FakeFetcher(ASSETS if assets is None else assets)
    mirror = SiteMirror(
        ROOT,
        output_root=str(tmp_path),
        renderer=renderer,
        fetcher=fetcher,
        **kwargs
    )
    return mirror, renderer, fetcher


def read(mirror, local_path):
    with open(os.path.join(mirror.scope.output_dir, local_path), encoding="utf-8") as f:
        return f.read()


class TestDepthBatches:

    def test_max_depth_one_processes_only_root(self, tmp_path):
        mirror, renderer, _ = make_mirror(tmp_path, max_depth=1)
        result = asyncio.run(mirror.mirror())

        assert renderer.rendered == [ROOT]
        assert result.visited == 1
        assert result.remaining == 2
        assert result.depth_reached == 1
        assert mirror.url_to_file == {ROOT: "index.html"}

    def test_max_depth_two_stops_before_grandchildren(self, tmp_path):
        mirror, renderer, _ = make_mirror(tmp_path, max_depth=2)
        result = asyncio.run(mirror.mirror())

        assert renderer.rendered[0] == ROOT
        assert set(renderer.rendered[1:]) == {"https://x.test/about", "https://x.test/blog/"}
        assert set(mirror.state().queued_urls) == {"https://x.test/team", "https://x.test/blog/post"}
        assert result.depth_reached == 2

    def test_full_crawl_until_queue_empty(self, tmp_path):
        mirror, renderer, _ = make_mirror(tmp_path, max_depth=10)
        result = asyncio.run(mirror.mirror())

        assert len(renderer.rendered) == 5
        assert len(set(renderer.rendered)) == 5
        assert result.remaining == 0
        assert result.depth_reached == 3
        assert result.pages_saved == 5
        assert mirror.phase is CrawlPhase.CLOSED


class TestSavedPages:

    def test_layout_and_rewrites(self, tmp_path):
        mirror, _, _ = make_mirror(tmp_path, max_depth=3)
        result = asyncio.run(mirror.mirror())

        assert mirror.url_to_file == {
            "https://x.test/": "index.html",
            "https://x.test/about": "about/index.html",
            "https://x.test/blog/": "blog/index.html",
            "https://x.test/team": "team/index.html",
            "https://x.test/blog/post": "blog/post/index.html",
        }

        index = read(mirror, "index.html")
        assert index.startswith("<!DOCTYPE html>")
        assert 'href="assets/styles/style.css"' in index
        assert 'src="assets/scripts/app.js"' in index
        assert 'src="assets/images/logo.png"' in index
        assert 'href="about/index.html"' in index
        assert 'href="blog/index.html"' in index
        assert 'href="https://elsewhere.test/"' in index

        about = read(mirror, "about/index.html")
        assert about.startswith("<!DOCTYPE html>")
        assert 'href="../assets/styles/style.css"' in about
        assert 'href="../index.html"' in about

        post = read(mirror, "blog/post/index.html")
        assert 'href="../../about/index.html"' in post

        assert result.entry_path == os.path.join(mirror.scope.output_dir, "index.html")
        assert os.path.exists(os.path.join(mirror.scope.output_dir, "assets", "images", "logo.png"))

    def test_no_absolute_local_paths_in_pages(self, tmp_path):
        mirror, _, _ = make_mirror(tmp_path, max_depth=3)
        asyncio.run(mirror.mirror())
        for local_path in mirror.url_to_file.values():
            assert mirror.scope.output_dir not in read(mirror, local_path)

    def test_sitemap_written(self, tmp_path):
        mirror, _, _ = make_mirror(tmp_path, max_depth=1)
        asyncio.run(mirror.mirror())
        with open(os.path.join(mirror.scope.output_dir, "sitemap.json"), encoding="utf-8") as f:
            sitemap = json.load(f)
        assert sitemap["domain"] == "x.test"
        assert sitemap["pages"] == {ROOT: "index.html"}
        assert not os.path.exists(os.path.join(mirror.scope.output_dir, "errors.json"))

    def test_byte_identical_across_runs(self, tmp_path):
        outputs = []
        for run in ("first", "second"):
            mirror, _, _ = make_mirror(tmp_path / run, max_depth=3, concurrency=2)
            asyncio.run(mirror.mirror())
            outputs.append({
                local_path: read(mirror, local_path)
                for local_path in mirror.url_to_file.values()
            })
        assert outputs[0] == outputs[1]


class TestFailures:

    def test_failed_page_skipped_and_not_retried(self, tmp_path):
        pages = dict(SITE)
        del pages["https://x.test/about"]
        mirror, renderer, _ = make_mirror(tmp_path, pages=pages, max_depth=5)
        result = asyncio.run(mirror.mirror())

        assert renderer.rendered.count("https://x.test/about") == 1
        assert "https://x.test/about" in mirror.state().visited_urls
        assert "https://x.test/about" not in mirror.url_to_file
        assert result.errors == [{
            "url": "https://x.test/about",
            "error": "HTTP 404",
            "type": "render_error",
        }]
        assert os.path.exists(os.path.join(mirror.scope.output_dir, "errors.json"))
        # The rest of the site is still mirrored
        assert "https://x.test/blog/post" in mirror.url_to_file

    def test_failed_asset_keeps_original_reference(self, tmp_path):
        pages = {ROOT: (
            '<html><body>'
            '<img src="https://x.test/img/logo.png">'
            '<img src="https://x.test/img/gone.png">'
            '</body></html>'
        )}
        mirror, _, _ = make_mirror(tmp_path, pages=pages, max_depth=1)
        result = asyncio.run(mirror.mirror())

        index = read(mirror, "index.html")
        assert 'src="assets/images/logo.png"' in index
        assert 'src="https://x.test/img/gone.png"' in index
        assert result.assets_downloaded == 1

    def test_renderer_released_on_unexpected_error(self, tmp_path):
        mirror, renderer, _ = make_mirror(tmp_path, crash_on=[ROOT])
        with pytest.raises(RuntimeError):
            asyncio.run(mirror.mirror())
        assert renderer.started
        assert renderer.stopped
        assert mirror.phase is CrawlPhase.CLOSED

    def test_invalid_start_url(self, tmp_path):
        with pytest.raises(InvalidUrlError):
            SiteMirror("https://", output_root=str(tmp_path))

    def test_concurrency_must_be_positive(self, tmp_path):
        with pytest.raises(ValueError):
            SiteMirror(ROOT, output_root=str(tmp_path), concurrency=0)


class TestScheduling:

    def test_pacing_after_each_full_window(self, tmp_path):
        pages = {ROOT: "".join(f'<a href="/p{i}">p{i}</a>' for i in range(4))}
        pages.update({f"https://x.test/p{i}": "<html></html>" for i in range(4)})
        mirror, _, _ = make_mirror(
            tmp_path, pages=pages, max_depth=2, concurrency=2, pacing_delay=1.0
        )

        with patch("site_mirror.crawler.crawler.asyncio.sleep", new=AsyncMock()) as sleep:
            asyncio.run(mirror.mirror())

        # Root batch is a partial window; the second batch has two full windows
        assert sleep.await_count == 2
        sleep.assert_awaited_with(1.0)

    def test_duplicate_url_in_batch_processed_once(self, tmp_path):
        mirror, renderer, _ = make_mirror(tmp_path, max_depth=1)
        asyncio.run(mirror._process_batch([ROOT, ROOT]))
        assert renderer.rendered == [ROOT]


class TestEntryPoints:

    def test_viewer_opened_on_entry_page(self, tmp_path):
        mirror, _, _ = make_mirror(tmp_path, max_depth=1, open_viewer=True)
        with patch("site_mirror.crawler.crawler.open_in_browser") as viewer:
            result = asyncio.run(mirror.mirror())
        viewer.assert_called_once_with(result.entry_path)

    def test_mirror_page_does_not_follow_links(self, tmp_path):
        mirror, renderer, _ = make_mirror(tmp_path)
        result = asyncio.run(mirror.mirror_page())
        assert renderer.rendered == [ROOT]
        assert result.pages_saved == 1
        assert os.path.exists(result.entry_path)

    def test_state_and_reset(self, tmp_path):
        mirror, _, _ = make_mirror(tmp_path, max_depth=1)
        asyncio.run(mirror.mirror())
        state = mirror.state()
        assert state.visited_urls == [ROOT]
        assert state.site_id == "x"

        mirror.reset()
        assert mirror.phase is CrawlPhase.INITIALIZED
        assert mirror.url_to_file == {}
        assert mirror.state().queued_urls == [ROOT]
        assert mirror.state().visited_urls == []


class TestUrlIdentity:

    def test_equivalent_spellings_rendered_once(self, tmp_path):
        pages = {
            ROOT: '<a href="https://x.test">Home</a><a href="/About">About</a>',
            "https://x.test/About": (
                '<a href="https://X.TEST/About">Self</a>'
                '<a href="https://x.test:443/">Home</a>'
            ),
        }
        mirror, renderer, _ = make_mirror(tmp_path, pages=pages, max_depth=5)
        result = asyncio.run(mirror.mirror())

        assert renderer.rendered == [ROOT, "https://x.test/About"]
        assert mirror.url_to_file == {
            ROOT: "index.html",
            "https://x.test/About": "About/index.html",
        }
        assert result.errors == []

    def test_start_url_without_path(self, tmp_path):
        mirror = SiteMirror("HTTPS://X.test", output_root=str(tmp_path))
        assert mirror.scope.start_url == ROOT
        assert mirror.state().queued_urls == [ROOT]


class TestConcurrency:

    SIBLINGS = [f"https://x.test/s{i}" for i in range(5)]

    def make_site(self):
        pages = {ROOT: "".join(f'<a href="/s{i}">s{i}</a>' for i in range(5))}
        pages.update({url: '<a href="/shared">Shared</a>' for url in self.SIBLINGS})
        pages["https://x.test/shared"] = "<html></html>"
        return pages

    def test_at_most_concurrency_renders_in_flight(self, tmp_path):
        renderer = CountingRenderer(self.make_site())
        mirror = SiteMirror(
            ROOT,
            output_root=str(tmp_path),
            max_depth=3,
            concurrency=2,
            pacing_delay=0,
            open_viewer=False,
            renderer=renderer,
            fetcher=FakeFetcher({}),
        )
        asyncio.run(mirror.mirror())

        assert renderer.max_in_flight == 2
        assert set(renderer.rendered[1:6]) == set(self.SIBLINGS)

    def test_link_shared_by_window_rendered_once(self, tmp_path):
        renderer = CountingRenderer(self.make_site())
        mirror = SiteMirror(
            ROOT,
            output_root=str(tmp_path),
            max_depth=3,
            concurrency=5,
            pacing_delay=0,
            open_viewer=False,
            renderer=renderer,
            fetcher=FakeFetcher({}),
        )
        result = asyncio.run(mirror.mirror())

        assert renderer.max_in_flight == 5
        assert renderer.rendered.count("https://x.test/shared") == 1
        assert renderer.rendered[-1] == "https://x.test/shared"
        assert result.depth_reached == 3
        assert result.remaining == 0

    def test_crash_cancels_rest_of_window(self, tmp_path):
        pages = {ROOT: '<a href="/slow">Slow</a><a href="/boom">Boom</a>'}
        renderer = BlockingRenderer(
            pages,
            crash_on=["https://x.test/boom"],
            block=["https://x.test/slow"],
        )
        mirror = SiteMirror(
            ROOT,
            output_root=str(tmp_path),
            max_depth=2,
            concurrency=2,
            pacing_delay=0,
            open_viewer=False,
            renderer=renderer,
            fetcher=FakeFetcher({}),
        )
        with pytest.raises(RuntimeError):
            asyncio.run(mirror.mirror())

        assert "https://x.test/slow" in renderer.rendered
        assert renderer.blocked_at_stop == set()
        assert renderer.stopped
