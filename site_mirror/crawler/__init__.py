"""
Crawler module for site mirroring.

Contains the frontier, asset pipeline, link rewriter, render and fetch
collaborators, and the engine that drives them.
"""

from .crawler import SiteMirror, MirrorResult, CrawlPhase
from .frontier import CrawlScope, Frontier, FrontierSnapshot
from .assets import AssetPipeline, AssetCategory, AssetRecord
from .rewrite import LinkRewriter
from .renderer import PageRenderer
from .downloader import AssetFetcher

__all__ = [
    "SiteMirror",
    "MirrorResult",
    "CrawlPhase",
    "CrawlScope",
    "Frontier",
    "FrontierSnapshot",
    "AssetPipeline",
    "AssetCategory",
    "AssetRecord",
    "LinkRewriter",
    "PageRenderer",
    "AssetFetcher",
]
