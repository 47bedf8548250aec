"""
Site Mirror - offline, browsable copies of live websites.

This package crawls one domain with a headless browser, downloads the
stylesheets, scripts, images and icons each page references, and rewrites
every link so the copy works from disk at any nesting depth.
"""

__version__ = "1.0.0"
__author__ = "Site Mirror Team"
