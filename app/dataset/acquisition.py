"""
Remote acquisition of the booking dataset.

Keeps a local CSV snapshot fresh (by modification time) and downloads a new copy
from a shared Google Drive file when it is missing or stale. Drive answers with
redirects and, for larger files, an HTML confirmation page that has to be
navigated before the actual bytes are served.
"""
import asyncio
import os
import re
import time
from pathlib import Path
from typing import List, Optional, Union
from urllib.parse import urljoin

import httpx

from app.core.config import settings
from app.core.logger import logger

DRIVE_BASE_URL = "https://drive.google.com"
REDIRECT_STATUSES = {301, 302, 303, 307, 308}
ACCEPTED_CONTENT_TYPES = ("text/csv", "text/plain", "application/octet-stream")
CSV_SAMPLE_BYTES = 500

# Direct-download links embedded in the confirmation interstitial
CONFIRMATION_LINK_PATTERNS = [
    re.compile(r'href="([^"]*uc[^"]*export=download[^"]*)"'),
    re.compile(r'href="([^"]*/uc\?[^"]*export=download[^"]*)"'),
    re.compile(r'id="uc-download-link"[^>]*href="([^"]*)"'),
    re.compile(r'downloadUrl":"([^"]*)"'),
]


class DatasetDownloadError(Exception):
    """Raised when no valid dataset could be downloaded."""


def extract_download_link(html: str) -> Optional[str]:
    """Finds the direct-download link in a Drive confirmation page, if any."""
    for pattern in CONFIRMATION_LINK_PATTERNS:
        match = pattern.search(html)
        if match and match.group(1):
            link = match.group(1).replace("&amp;", "&")
            return urljoin(DRIVE_BASE_URL, link)
    return None


def looks_like_csv(sample: bytes) -> bool:
    return b"," in sample or b"\n" in sample


class DatasetDownloader:
    """
    Downloads the dataset CSV, following redirects and confirmation pages by hand.

    Every request (redirect hop, confirmation retry or network retry) consumes one
    attempt out of max_attempts.
    """

    def __init__(
        self,
        url: str,
        file_id: str = "",
        max_attempts: int = 3,
        retry_delay: float = 1.0,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.url = url
        self.file_id = file_id
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls) -> "DatasetDownloader":
        return cls(
            url=settings.dataset_url,
            file_id=settings.DATASET_FILE_ID,
            max_attempts=settings.DATASET_MAX_ATTEMPTS,
            retry_delay=settings.DATASET_RETRY_DELAY_SECONDS,
            timeout=settings.DATASET_TIMEOUT_SECONDS,
        )

    def _confirmation_fallback(self, current_url: str, is_retry: bool) -> str:
        if not is_retry:
            return str(httpx.URL(current_url).copy_merge_params({"confirm": "t"}))
        return f"{DRIVE_BASE_URL}/uc?export=download&id={self.file_id}&confirm=t"

    async def download(self, target: Union[str, Path]) -> Path:
        """
        Downloads into target. The file is written to a temporary sibling first and
        only replaces target once it passed validation.
        """
        if not self.url:
            raise DatasetDownloadError("No dataset URL configured")

        target = Path(target)
        partial = target.with_name(target.name + ".part")
        attempts = 0
        current_url = self.url
        is_retry = False

        logger.info("Downloading dataset from %s", self.url)

        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=False, transport=self.transport) as client:
            while True:
                attempts += 1
                if attempts > self.max_attempts:
                    raise DatasetDownloadError("Max download attempts reached")

                try:
                    async with client.stream("GET", current_url) as response:
                        content_type = response.headers.get("content-type", "")
                        logger.info("Dataset response: status=%s content-type=%s", response.status_code, content_type)

                        location = response.headers.get("location")
                        if response.status_code in REDIRECT_STATUSES and location:
                            current_url = urljoin(current_url, location)
                            is_retry = True
                            logger.info("Following redirect to %s", current_url)
                            continue

                        if "text/html" in content_type:
                            html = (await response.aread()).decode("utf-8", errors="replace")
                            link = extract_download_link(html)
                            if link:
                                logger.info("Found download link in confirmation page: %s", link)
                                current_url = link
                            else:
                                current_url = self._confirmation_fallback(current_url, is_retry)
                                logger.info("No download link found, retrying with %s", current_url)
                            is_retry = True
                            continue

                        if response.status_code != 200:
                            raise DatasetDownloadError(f"Failed to download: HTTP {response.status_code}")

                        if not any(t in content_type for t in ACCEPTED_CONTENT_TYPES):
                            logger.warning("Unexpected dataset content type: %s", content_type)

                        with partial.open("wb") as handle:
                            async for chunk in response.aiter_bytes():
                                handle.write(chunk)

                except httpx.TransportError as e:
                    partial.unlink(missing_ok=True)
                    logger.error("Error downloading dataset (attempt %d/%d): %s", attempts, self.max_attempts, e)
                    if attempts >= self.max_attempts:
                        raise DatasetDownloadError(str(e)) from e
                    await asyncio.sleep(self.retry_delay)
                    current_url = self.url
                    is_retry = True
                    continue

                break

        self._validate(partial)
        os.replace(partial, target)
        logger.info("Dataset downloaded successfully (%.2f KB) to %s", target.stat().st_size / 1024, target)
        return target

    @staticmethod
    def _validate(partial: Path) -> None:
        size = partial.stat().st_size
        if size == 0:
            partial.unlink(missing_ok=True)
            raise DatasetDownloadError("Downloaded file is empty")

        with partial.open("rb") as handle:
            sample = handle.read(CSV_SAMPLE_BYTES)
        if not looks_like_csv(sample):
            partial.unlink(missing_ok=True)
            raise DatasetDownloadError("Downloaded file does not appear to be a valid CSV")


def needs_update(file_path: Union[str, Path], max_age_seconds: Optional[float] = None) -> bool:
    """True when the file is missing or older than max_age_seconds."""
    path = Path(file_path)
    if not path.exists():
        return True
    max_age = settings.dataset_cache_seconds if max_age_seconds is None else max_age_seconds
    return time.time() - path.stat().st_mtime > max_age


async def ensure_dataset(
    file_path: Union[str, Path],
    downloader: DatasetDownloader,
    max_age_seconds: Optional[float] = None
) -> Path:
    """
    Makes sure a usable dataset file exists at file_path, refreshing it when stale.
    A failed refresh keeps a previous non-empty copy; with no copy the error propagates.
    """
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if path.exists() and path.stat().st_size == 0:
        logger.warning("Dataset file %s is empty, deleting it before download", path)
        path.unlink()

    if not needs_update(path, max_age_seconds):
        return path

    try:
        await downloader.download(path)
    except (DatasetDownloadError, httpx.HTTPError, OSError) as e:
        if path.exists() and path.stat().st_size > 0:
            logger.warning("Using cached dataset %s (download failed: %s)", path, e)
            return path
        raise

    return path


def fallback_dataset_paths() -> List[Path]:
    """Well-known places a dataset may have been dropped manually."""
    package_root = Path(__file__).resolve().parents[2]
    cwd = Path.cwd()
    return [
        package_root / "data" / "dataset.csv",
        package_root / "dataset.csv",
        cwd / "data" / "dataset.csv",
        cwd / "dataset.csv",
    ]


def find_fallback_dataset() -> Optional[Path]:
    """First non-empty file among the fallback locations."""
    for candidate in fallback_dataset_paths():
        if candidate.is_file() and candidate.stat().st_size > 0:
            return candidate
    return None


async def resolve_dataset_path(
    file_path: Union[str, Path],
    downloader: DatasetDownloader,
    max_age_seconds: Optional[float] = None
) -> Optional[Path]:
    """
    Path of a usable dataset file, or None.
    Tries the managed copy first, then any file found at a fallback location.
    """
    try:
        return await ensure_dataset(file_path, downloader, max_age_seconds)
    except (DatasetDownloadError, httpx.HTTPError, OSError) as e:
        logger.error("Error ensuring dataset: %s", e)

    candidate = await asyncio.to_thread(find_fallback_dataset)
    if candidate is not None:
        logger.warning("Falling back to dataset found at %s", candidate)
    return candidate
