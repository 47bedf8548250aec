"""
Exceptions raised by the site mirror.

Only InvalidUrlError is fatal to a crawl; the others are caught at the
smallest scope they affect (one page, one asset, one link).
"""


class MirrorError(Exception):
    """Base class for all site mirror errors."""


class InvalidUrlError(MirrorError, ValueError):
    """The starting URL cannot be parsed into a crawl scope."""

    def __init__(self, url: str, reason: str = "cannot be parsed"):
        self.url = url
        self.reason = reason
        super().__init__(f"Invalid URL {url!r}: {reason}")


class NavigationError(MirrorError):
    """A page could not be rendered."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to render {url}: {reason}")


class FetchError(MirrorError):
    """An asset could not be downloaded."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch {url}: {reason}")


class PathResolutionError(MirrorError):
    """A URL has no local path representation."""
