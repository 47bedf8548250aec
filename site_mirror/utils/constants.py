"""
Shared constants for the site mirror.

Contains the default configuration values used across multiple modules.
"""

# Default user agent string for all HTTP requests
# Used by both the browser renderer and the asset fetcher
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

# Asset request timeout in seconds
DEFAULT_TIMEOUT = 30

# Page render timeout in milliseconds (for Playwright)
DEFAULT_PAGE_TIMEOUT = 3000000

# Pages rendered at the same time within one depth batch
DEFAULT_CONCURRENCY = 3

# Pause after every full concurrency window, in seconds
DEFAULT_PACING_DELAY = 1.0

# Number of depth batches processed by default
DEFAULT_MAX_DEPTH = 3

# Mirrors land in {DEFAULT_OUTPUT_ROOT}/{site_id}
DEFAULT_OUTPUT_ROOT = "./scraped-website"

# Path prefixes of framework build output that get flattened to assets/
BUNDLE_PREFIXES = ("/_next",)

# Asset category -> directory name under assets/
ASSET_DIRS = {
    "styles": "styles",
    "scripts": "scripts",
    "images": "images",
    "misc": "misc",
}

# Links ending in one of these are never crawled as pages
NON_PAGE_EXTENSIONS = (
    "pdf", "zip", "exe", "dmg",
    "jpg", "jpeg", "png", "gif", "svg", "ico",
    "css", "js",
)
