"""
Utility modules for the site mirror.

Contains logging, path mapping, error types, and constants.
"""

from .log import setup_logger, get_logger
from .errors import (
    MirrorError,
    InvalidUrlError,
    NavigationError,
    FetchError,
    PathResolutionError,
)
from .paths import (
    sanitize_filename,
    normalize_url,
    url_to_local_path,
    relative_path,
    asset_relative_path,
    ensure_dir,
)
from .constants import (
    DEFAULT_USER_AGENT,
    DEFAULT_TIMEOUT,
    DEFAULT_PAGE_TIMEOUT,
    DEFAULT_CONCURRENCY,
    DEFAULT_PACING_DELAY,
    DEFAULT_MAX_DEPTH,
    DEFAULT_OUTPUT_ROOT,
)

__all__ = [
    "setup_logger",
    "get_logger",
    "MirrorError",
    "InvalidUrlError",
    "NavigationError",
    "FetchError",
    "PathResolutionError",
    "sanitize_filename",
    "normalize_url",
    "url_to_local_path",
    "relative_path",
    "asset_relative_path",
    "ensure_dir",
    "DEFAULT_USER_AGENT",
    "DEFAULT_TIMEOUT",
    "DEFAULT_PAGE_TIMEOUT",
    "DEFAULT_CONCURRENCY",
    "DEFAULT_PACING_DELAY",
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_OUTPUT_ROOT",
]
