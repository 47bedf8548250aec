"""
Asset pipeline for downloading page resources into the mirror.

Stylesheets, scripts, images and icon/manifest links are fetched into
assets/{styles,scripts,images,misc}/ and their references rewritten to
paths relative to the page.
"""

import os
import posixpath
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Set
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from .downloader import AssetFetcher
from .frontier import CrawlScope
from ..utils.constants import ASSET_DIRS
from ..utils.errors import FetchError
from ..utils.log import get_logger
from ..utils.paths import asset_relative_path, sanitize_filename


class AssetCategory(Enum):
    """Kinds of page assets, with where they live and how they are referenced."""

    STYLES = ("styles", "link[rel~=stylesheet]", "href")
    SCRIPTS = ("scripts", "script[src]", "src")
    IMAGES = ("images", "img[src]", "src")
    MISC = (
        "misc",
        'link[rel*="icon"], link[rel="apple-touch-icon"], link[rel="manifest"]',
        "href",
    )

    def __init__(self, key: str, selector: str, attribute: str):
        self.key = key
        self.selector = selector
        self.attribute = attribute

    @property
    def dirname(self) -> str:
        return ASSET_DIRS[self.key]

    def file_name(self, url_path: str, index: int) -> str:
        """
        Pick the file name for an asset of this category.

        Args:
            url_path: Path component of the asset URL
            index: 1-based position of the element among this category's
                elements on the page

        Returns:
            Unsanitized file name
        """
        basename = posixpath.basename(url_path)
        return _FILE_NAMERS[self](basename, index)


def _style_file_name(basename: str, index: int) -> str:
    if basename.endswith(".css"):
        return basename
    return f"style{index}.css"


def _script_file_name(basename: str, index: int) -> str:
    if "." in basename:
        return basename
    return f"script{index}.js"


def _image_file_name(basename: str, index: int) -> str:
    if "." in basename:
        return basename
    return f"image{index}.jpg"


def _misc_file_name(basename: str, index: int) -> str:
    return basename or f"asset{index}"


_FILE_NAMERS: Dict[AssetCategory, Callable[[str, int], str]] = {
    AssetCategory.STYLES: _style_file_name,
    AssetCategory.SCRIPTS: _script_file_name,
    AssetCategory.IMAGES: _image_file_name,
    AssetCategory.MISC: _misc_file_name,
}


@dataclass
class AssetRecord:
    """One asset saved for a page."""

    source_url: str
    category: AssetCategory
    file_name: str
    file_path: str
    local_path: str


def unique_file_name(file_name: str, taken: Set[str]) -> str:
    """
    Make a file name unique within a set by suffixing _1, _2, ...

    >>> unique_file_name("style.css", {"style.css"})
    'style_1.css'
    """
    if file_name not in taken:
        return file_name
    name, ext = os.path.splitext(file_name)
    counter = 1
    while f"{name}_{counter}{ext}" in taken:
        counter += 1
    return f"{name}_{counter}{ext}"


class AssetPipeline:
    """
    Downloads the assets a page references and points the page at the copies.

    File names are de-duplicated per page and per category only; nothing is
    remembered between pages.
    """

    def __init__(self, scope: CrawlScope, fetcher: AssetFetcher):
        """
        Initialize the asset pipeline.

        Args:
            scope: Crawl scope (output directory and root URL)
            fetcher: Fetch collaborator used for every download
        """
        self.scope = scope
        self.fetcher = fetcher
        self.logger = get_logger("assets")

        self.downloaded = 0
        self.failed: Set[str] = set()

    async def process(self, soup: BeautifulSoup, page_url: str) -> List[AssetRecord]:
        """
        Download and rewrite all assets of a page.

        Fetch failures leave the original reference in place.

        Args:
            soup: Parsed page, modified in place
            page_url: URL the page was rendered from

        Returns:
            Records of the assets that were saved
        """
        records: List[AssetRecord] = []
        for category in AssetCategory:
            records.extend(await self._process_category(soup, page_url, category))

        self.logger.debug(f"{len(records)} assets saved for {page_url}")
        return records

    async def _process_category(
        self,
        soup: BeautifulSoup,
        page_url: str,
        category: AssetCategory
    ) -> List[AssetRecord]:
        taken: Set[str] = set()
        records: List[AssetRecord] = []

        for index, element in enumerate(soup.select(category.selector), start=1):
            reference = (element.get(category.attribute) or "").strip()
            if not reference or reference.startswith("data:"):
                continue

            try:
                absolute_url = urljoin(page_url, reference)
                parsed = urlparse(absolute_url)
            except ValueError as e:
                self.logger.debug(f"Unresolvable {category.key} reference {reference!r}: {e}")
                continue
            if parsed.scheme not in ("http", "https"):
                continue

            file_name = sanitize_filename(category.file_name(parsed.path, index))
            file_name = unique_file_name(file_name, taken)
            taken.add(file_name)
            file_path = os.path.join(
                self.scope.output_dir, "assets", category.dirname, file_name
            )

            try:
                content = await self.fetcher.fetch(absolute_url)
                self.fetcher.save(content, file_path)
            except FetchError as e:
                self.logger.debug(str(e))
                self.failed.add(absolute_url)
                continue
            except OSError as e:
                self.logger.warning(f"Could not save {absolute_url} to {file_path}: {e}")
                self.failed.add(absolute_url)
                continue

            local_path = asset_relative_path(
                page_url, file_path, self.scope.output_dir, self.scope.root_url
            )
            element[category.attribute] = local_path
            self.downloaded += 1
            records.append(AssetRecord(
                source_url=absolute_url,
                category=category,
                file_name=file_name,
                file_path=file_path,
                local_path=local_path,
            ))
            self.logger.debug(f"Updated {category.key} path: {local_path}")

        if category is AssetCategory.IMAGES:
            # Responsive variants are not mirrored
            for img in soup.select("img[srcset]"):
                del img["srcset"]

        return records
