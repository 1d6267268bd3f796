"""
Dataset Downloader
==================

Fetches the training and evaluation CSV files from a fixed URL prefix,
skipping any file that already exists locally.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable

import requests

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://d396qusza40orc.cloudfront.net/predmachlearn/"
DEFAULT_FILES = ("pml-training.csv", "pml-testing.csv")

HEADERS = {
    'User-Agent': 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36'
}


def build_url(base_url: str, filename: str) -> str:
    """Join a URL prefix and a file name with a single slash."""
    return f"{base_url.rstrip('/')}/{filename.lstrip('/')}"


def download_file(url: str, destination: Path, timeout: float = 60) -> Path:
    """
    Download a single file.

    The body is written to a ``.part`` file first and moved into place only
    once complete, so a failed transfer never leaves a cached file behind.

    Args:
        url: Remote file URL
        destination: Local file path
        timeout: Request timeout in seconds

    Returns:
        Path to the downloaded file

    Raises:
        requests.RequestException: On network or HTTP errors
    """
    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)

    logger.info(f"Fetching: {url}")
    try:
        response = requests.get(url, headers=HEADERS, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        logger.error(f"Error requesting {url}: {e}")
        raise

    partial = destination.with_name(destination.name + ".part")
    partial.write_bytes(response.content)
    partial.replace(destination)

    logger.info(f"Saved {len(response.content) / 1024:.1f} KB to {destination}")
    return destination


def ensure_datasets(
    base_url: str = DEFAULT_BASE_URL,
    filenames: Iterable[str] = DEFAULT_FILES,
    data_dir: str = "data/raw/",
    force: bool = False,
    timeout: float = 60
) -> Dict[str, Path]:
    """
    Make sure every dataset file is present in ``data_dir``.

    Args:
        base_url: URL prefix the files are served from
        filenames: File names to fetch
        data_dir: Local cache directory
        force: Download even when the file already exists
        timeout: Request timeout in seconds

    Returns:
        Mapping of file name to local path
    """
    data_dir = Path(data_dir)
    paths = {}

    for name in filenames:
        local_path = data_dir / name

        if local_path.exists() and not force:
            logger.info(f"Using cached file {local_path}")
        else:
            download_file(build_url(base_url, name), local_path, timeout=timeout)

        paths[name] = local_path

    return paths
