"""
Opens a mirrored page in the user's browser.
"""

import os
import webbrowser
from pathlib import Path

from .log import get_logger, print_info, print_warning


logger = get_logger("viewer")


def open_in_browser(file_path: str) -> bool:
    """
    Open a local file in the default browser.

    Failures are reported but never raised; the mirror is complete either way.

    Args:
        file_path: Path of the HTML file to open

    Returns:
        True if a browser was launched, False otherwise
    """
    if not os.path.exists(file_path):
        print_warning(f"Nothing to open, {file_path} does not exist")
        return False

    file_url = Path(file_path).resolve().as_uri()
    print_info(f"Opening in browser: {file_url}")

    try:
        opened = webbrowser.open(file_url)
    except webbrowser.Error as e:
        logger.warning(f"Failed to open browser: {e}")
        opened = False

    if not opened:
        print_warning(f"Please open manually: {file_url}")
    return opened
