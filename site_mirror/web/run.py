#!/usr/bin/env python3
"""
Entry point for running the Site Mirror web API.

Usage:
    python -m site_mirror.web.run --host 127.0.0.1 --port 5000
"""

import argparse

from site_mirror.utils.log import setup_logger
from site_mirror.web.app import run_app


def main():
    """Parse arguments and run the web application."""
    parser = argparse.ArgumentParser(
        description='Run the Site Mirror web API'
    )
    parser.add_argument(
        '--host',
        default='127.0.0.1',
        help='Host to bind to (default: 127.0.0.1)'
    )
    parser.add_argument(
        '--port', '-p',
        type=int,
        default=5000,
        help='Port to listen on (default: 5000)'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug mode'
    )

    args = parser.parse_args()

    setup_logger()
    print(f"Starting Site Mirror web API at http://{args.host}:{args.port}")
    run_app(host=args.host, port=args.port, debug=args.debug)


if __name__ == '__main__':
    main()
