"""
Single-call entry point for running a mirror from other programs.
"""

import asyncio

from .crawler import SiteMirror
from .utils.constants import DEFAULT_MAX_DEPTH


def mirror_site(url: str, max_depth: int = DEFAULT_MAX_DEPTH, **options) -> str:
    """
    Mirror a website and report success.

    Args:
        url: Starting URL
        max_depth: Number of depth levels to crawl
        **options: Extra SiteMirror keyword arguments

    Returns:
        "success" once the mirror has been written

    Raises:
        InvalidUrlError: If the URL cannot be parsed
    """
    mirror = SiteMirror(url, max_depth=max_depth, **options)
    asyncio.run(mirror.mirror())
    return "success"
