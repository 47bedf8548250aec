"""
Path and URL utilities for the site mirror.

Maps remote URLs to local file paths inside the mirror and computes the
relative references between mirrored files. Every page gets a path that
follows the site's own URL structure, so references are always recomputed
per (referrer, target) pair with a chain of ``../`` segments.
"""

import os
import posixpath
import re
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import urljoin, urlparse, urlunparse, unquote, quote

from .constants import ASSET_DIRS
from .errors import PathResolutionError
from .log import get_logger


logger = get_logger("paths")

# Characters that are not allowed in file names on common filesystems
INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*]')

DEFAULT_PAGE_PATH = "index.html"

DEFAULT_PORTS = {"http": 80, "https": 443}


def sanitize_filename(name: str) -> str:
    """
    Make a single path component filesystem-safe.

    Anything from the first ``?`` on is dropped, then every character in
    ``<>:"/\\|?*`` is replaced with an underscore.
    """
    name = name.split("?", 1)[0]
    return INVALID_FILENAME_CHARS.sub("_", name)


def normalize_url(url: str) -> str:
    """
    Bring an http(s) URL to the one spelling used as its crawl identity.

    The scheme and host are lowercased, a default port is dropped and an
    empty path becomes ``/``. Other URLs are returned unchanged.

    Raises:
        ValueError: If the URL cannot be parsed
    """
    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    hostname = parsed.hostname
    if scheme not in DEFAULT_PORTS or not hostname:
        return url

    host = f"[{hostname}]" if ":" in hostname else hostname
    port = parsed.port
    if port is not None and port != DEFAULT_PORTS[scheme]:
        host = f"{host}:{port}"
    userinfo, at, _ = parsed.netloc.rpartition("@")
    netloc = f"{userinfo}{at}{host}"

    return urlunparse(parsed._replace(scheme=scheme, netloc=netloc, path=parsed.path or "/"))


def _resolve_local_path(url: str, base_url: Optional[str]) -> str:
    try:
        absolute = urljoin(base_url, url) if base_url else url
        parsed = urlparse(absolute)
    except ValueError as e:
        raise PathResolutionError(f"cannot parse {url!r}: {e}") from e

    if parsed.scheme and parsed.scheme not in ("http", "https"):
        raise PathResolutionError(f"unsupported scheme in {url!r}")

    path = parsed.path.lstrip("/")
    if not path:
        return DEFAULT_PAGE_PATH

    if path.endswith("/"):
        path += "index.html"
    elif "." not in path.rsplit("/", 1)[-1]:
        # Extensionless paths are directories with an index page
        path += "/index.html"

    segments = [
        sanitize_filename(unquote(segment))
        for segment in path.split("/")
        if segment and segment not in (".", "..")
    ]
    if not segments:
        return DEFAULT_PAGE_PATH
    return "/".join(segments)


def url_to_local_path(url: str, base_url: Optional[str] = None) -> Optional[str]:
    """
    Convert a URL to its local path inside the mirror.

    Args:
        url: URL to convert (absolute, or relative to base_url)
        base_url: Base URL for resolving relative URLs

    Returns:
        Forward-slash relative path such as ``blog/index.html``, or None if
        the URL cannot be mapped
    """
    try:
        return _resolve_local_path(url, base_url)
    except PathResolutionError as e:
        logger.debug(f"No local path: {e}")
        return None


def page_depth(local_path: str) -> int:
    """Number of directories between the mirror root and a local path."""
    directory = posixpath.dirname(local_path.replace("\\", "/"))
    if directory in ("", "."):
        return 0
    return len(directory.split("/"))


def _as_href(local_path: str) -> str:
    return quote(local_path, safe="/")


def relative_path(from_local_path: str, to_url: str, base_url: Optional[str] = None) -> str:
    """
    Compute the reference from a mirrored page to another mirrored page.

    Args:
        from_local_path: Local path of the referencing page
        to_url: URL of the target page
        base_url: Base URL for resolving relative URLs

    Returns:
        Relative reference using forward slashes, or to_url unchanged when
        the target has no local path
    """
    to_local_path = url_to_local_path(to_url, base_url)
    if to_local_path is None:
        return to_url
    return "../" * page_depth(from_local_path) + _as_href(to_local_path)


def asset_relative_path(
    page_url: str,
    asset_file_path: str,
    output_dir: str,
    base_url: Optional[str] = None
) -> str:
    """
    Compute the reference from a mirrored page to a downloaded asset.

    Args:
        page_url: URL of the referencing page
        asset_file_path: Absolute path of the asset on disk
        output_dir: Mirror root directory
        base_url: Base URL for resolving relative URLs

    Returns:
        Relative reference using forward slashes
    """
    page_path = url_to_local_path(page_url, base_url) or DEFAULT_PAGE_PATH
    try:
        asset_path = os.path.relpath(asset_file_path, output_dir)
    except ValueError as e:
        # relpath fails across drives on Windows
        logger.warning(f"Cannot place asset {asset_file_path} under {output_dir}: {e}")
        return "./" + "/".join(Path(asset_file_path).parts[-3:])
    asset_path = asset_path.replace(os.sep, "/")
    return "../" * page_depth(page_path) + _as_href(asset_path)


def get_domain(url: str) -> str:
    """
    Extract the hostname from a URL.

    Scheme, port and credentials are ignored; the result is lowercase and
    empty when the URL has no host.
    """
    try:
        return urlparse(url).hostname or ""
    except ValueError:
        return ""


def is_same_domain(url: str, domain: str) -> bool:
    """
    Check if a URL belongs to the given hostname.

    Only exact hostname equality counts; subdomains are other sites.
    """
    return bool(domain) and get_domain(url) == domain.lower()


def ensure_dir(path: str) -> None:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure exists
    """
    os.makedirs(path, exist_ok=True)


def ensure_parent_dir(file_path: str) -> None:
    """
    Ensure the parent directory of a file exists.

    Args:
        file_path: File path whose parent directory should exist
    """
    parent = os.path.dirname(file_path)
    if parent:
        ensure_dir(parent)


def create_output_structure(output_dir: str) -> Dict[str, str]:
    """
    Create the output directory structure for a mirror.

    Args:
        output_dir: Mirror root directory

    Returns:
        Dictionary of asset category to directory path, plus 'root'
    """
    dirs = {'root': output_dir}
    for category, dirname in ASSET_DIRS.items():
        dirs[category] = os.path.join(output_dir, 'assets', dirname)

    for dir_path in dirs.values():
        ensure_dir(dir_path)

    return dirs
