#!/usr/bin/env python3
"""
Site Mirror - offline copies of live websites.

This tool crawls one domain, renders each page with Playwright, downloads
the assets it references, and rewrites links for offline browsing.

Usage:
    python -m site_mirror.main --url https://example.com --depth 3

Output layout:
    scraped-website/{site}/index.html (and other HTML pages)
    scraped-website/{site}/assets/{styles,scripts,images,misc}/
"""

import argparse
import asyncio
import logging
import sys
import traceback
from typing import List, Optional

from site_mirror.crawler import SiteMirror, MirrorResult
from site_mirror.utils.constants import (
    DEFAULT_CONCURRENCY,
    DEFAULT_MAX_DEPTH,
    DEFAULT_OUTPUT_ROOT,
    DEFAULT_PACING_DELAY,
    DEFAULT_PAGE_TIMEOUT,
)
from site_mirror.utils.errors import InvalidUrlError
from site_mirror.utils.log import (
    setup_logger,
    print_status,
    print_success,
    print_error,
    print_info
)


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog='site_mirror',
        description='Mirror a website for offline viewing',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    %(prog)s --url https://example.com
    %(prog)s --url https://example.com --depth 5 --output ./mirrors
    %(prog)s --url example.com -c 5 --delay 0 --no-open
        """
    )

    parser.add_argument(
        '--url', '-u',
        type=str,
        required=True,
        help='URL of the website to mirror (e.g., https://example.com)'
    )

    parser.add_argument(
        '--depth', '-d',
        type=int,
        default=DEFAULT_MAX_DEPTH,
        help=f'Maximum crawl depth (default: {DEFAULT_MAX_DEPTH})'
    )

    parser.add_argument(
        '--output', '-o',
        type=str,
        default=DEFAULT_OUTPUT_ROOT,
        help=f'Directory that receives the mirror (default: {DEFAULT_OUTPUT_ROOT})'
    )

    parser.add_argument(
        '--concurrency', '-c',
        type=int,
        default=DEFAULT_CONCURRENCY,
        help=f'Pages rendered at the same time (default: {DEFAULT_CONCURRENCY})'
    )

    parser.add_argument(
        '--delay',
        type=float,
        default=DEFAULT_PACING_DELAY,
        help=f'Pause after each window of pages in seconds (default: {DEFAULT_PACING_DELAY})'
    )

    parser.add_argument(
        '--timeout',
        type=int,
        default=DEFAULT_PAGE_TIMEOUT,
        help=f'Page render timeout in milliseconds (default: {DEFAULT_PAGE_TIMEOUT})'
    )

    parser.add_argument(
        '--no-headless',
        action='store_true',
        help='Run browser in visible mode (useful for debugging)'
    )

    parser.add_argument(
        '--no-open',
        action='store_true',
        help='Do not open the mirrored entry page when done'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    parser.add_argument(
        '--quiet', '-q',
        action='store_true',
        help='Suppress output except errors'
    )

    return parser.parse_args(argv)


def validate_url(url: str) -> str:
    """
    Normalize the input URL, adding https:// when no scheme is given.

    Host validation happens when the crawl scope is built.
    """
    url = url.strip()
    if not url.startswith(('http://', 'https://')):
        url = 'https://' + url
    return url


def print_banner() -> None:
    """Print the application banner."""
    banner = """
╔═══════════════════════════════════════════════════════════════╗
║                       SITE MIRROR v1.0                        ║
║              Offline copies of live websites                  ║
╚═══════════════════════════════════════════════════════════════╝
    """
    print_status(banner, "bold cyan")


def print_summary(result: MirrorResult) -> None:
    """
    Print the mirror summary.

    Args:
        result: MirrorResult object
    """
    print("\n" + "=" * 60)
    print_success("MIRROR SUMMARY")
    print("=" * 60)
    print(f"  URLs visited:      {result.visited}")
    print(f"  URLs remaining:    {result.remaining}")
    print(f"  Depth reached:     {result.depth_reached}")
    print(f"  Pages saved:       {result.pages_saved}")
    print(f"  Assets downloaded: {result.assets_downloaded}")
    print(f"  Errors:            {len(result.errors)}")
    print(f"  Duration:          {result.duration_seconds:.1f} seconds")
    print("")
    print(f"  Files saved in: {result.output_dir}")
    print("    ├── index.html (and other HTML pages)")
    print("    └── assets/")
    print("        ├── styles/ (CSS files)")
    print("        ├── scripts/ (JavaScript files)")
    print("        ├── images/ (Image files)")
    print("        └── misc/ (Icons and manifests)")
    print("=" * 60 + "\n")


async def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the site mirror.

    Returns:
        Exit code (0 for success or interrupt, 1 for error)
    """
    args = parse_arguments(argv)

    log_level = logging.DEBUG if args.verbose else (logging.WARNING if args.quiet else logging.INFO)
    setup_logger(level=log_level)

    if not args.quiet:
        print_banner()

    try:
        url = validate_url(args.url)

        mirror = SiteMirror(
            url=url,
            output_root=args.output,
            max_depth=args.depth,
            concurrency=args.concurrency,
            pacing_delay=args.delay,
            timeout=args.timeout,
            headless=not args.no_headless,
            open_viewer=not args.no_open,
        )

        result = await mirror.mirror()

        if not args.quiet:
            print_summary(result)

        return 0

    except KeyboardInterrupt:
        print_info("Interrupted by user")
        return 0
    except (InvalidUrlError, ValueError) as e:
        print_error(f"Invalid input: {e}")
        return 1
    except Exception as e:
        print_error(f"Error: {e}")
        if args.verbose:
            traceback.print_exc()
        return 1


def run() -> None:
    """Entry point wrapper for running as module."""
    try:
        code = asyncio.run(main())
    except KeyboardInterrupt:
        print_info("Interrupted by user")
        code = 0
    sys.exit(code)


if __name__ == '__main__':
    run()
