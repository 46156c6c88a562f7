import asyncio
import sys
import os

import httpx

# Add project root to python path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.core.config import settings
from app.core.logger import logger
from app.dataset.acquisition import DatasetDownloader, DatasetDownloadError, ensure_dataset
from app.dataset.loader import calculate_dataset_stats, load_dataset


async def refresh_dataset() -> int:
    """
    Forces a fresh download of the booking dataset, whatever the age of the local copy.
    A failed download keeps the previous copy.
    """
    logger.info("Refreshing dataset at %s", settings.DATASET_LOCAL_PATH)

    try:
        path = await ensure_dataset(settings.DATASET_LOCAL_PATH, DatasetDownloader.from_settings(), max_age_seconds=0)
    except (DatasetDownloadError, httpx.HTTPError, OSError) as e:
        logger.error("Dataset refresh failed and no local copy exists: %s", e)
        return 1

    stats = calculate_dataset_stats(load_dataset(path))
    logger.info(
        "Dataset ready: %d listings, booking rate %.2f%%",
        stats.total_properties,
        stats.booking_rate * 100
    )
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(refresh_dataset()))
