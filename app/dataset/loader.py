"""
CSV loading and aggregate statistics for the booking dataset.
Loading never raises: a missing or broken file yields an empty dataset.
"""
import csv
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from app.core.logger import logger
from app.dataset.schemas import DatasetRecord, DatasetStatistics

DATASET_COLUMNS = (
    "date",
    "property_id",
    "surface_m2",
    "bedrooms",
    "location_score",
    "listing_price",
    "is_booked",
)


def _to_float(value: Optional[str]) -> float:
    """Anything unparseable (or NaN) becomes 0."""
    try:
        number = float((value or "").strip())
    except ValueError:
        return 0.0
    return number if number == number else 0.0


def _to_booked_flag(value: Optional[str]) -> int:
    try:
        return 1 if int(float((value or "").strip())) == 1 else 0
    except (ValueError, OverflowError):
        return 0


def parse_record(row: Dict[str, Optional[str]]) -> DatasetRecord:
    """Builds a typed record from a CSV row; numeric fields default to 0 on bad input."""
    return DatasetRecord(
        date=(row.get("date") or "").strip(),
        property_id=(row.get("property_id") or "").strip(),
        surface_m2=_to_float(row.get("surface_m2")),
        bedrooms=_to_float(row.get("bedrooms")),
        location_score=_to_float(row.get("location_score")),
        listing_price=_to_float(row.get("listing_price")),
        is_booked=_to_booked_flag(row.get("is_booked")),
    )


def load_dataset(file_path: Union[str, Path]) -> List[DatasetRecord]:
    """
    Reads the dataset CSV (header row required).
    Returns an empty list when the file is missing, empty or unreadable.
    """
    path = Path(file_path)

    if not path.exists():
        logger.warning("Dataset file not found at %s", path)
        return []

    if path.stat().st_size == 0:
        logger.warning("Dataset file is empty at %s", path)
        return []

    try:
        with path.open("r", encoding="utf-8", newline="") as handle:
            reader = csv.DictReader(handle, skipinitialspace=True)
            if reader.fieldnames:
                reader.fieldnames = [name.strip() for name in reader.fieldnames]
                missing = [c for c in DATASET_COLUMNS if c not in reader.fieldnames]
                if missing:
                    logger.warning("Dataset %s is missing columns %s, defaulting them", path, missing)
            records = [
                parse_record(row)
                for row in reader
                if any((value or "").strip() for value in row.values() if isinstance(value, str))
            ]
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        logger.error("Error loading dataset from %s: %s", path, e, exc_info=True)
        return []

    logger.info("Loaded %d records from dataset %s", len(records), path)
    return records


def calculate_dataset_stats(records: Iterable[DatasetRecord]) -> DatasetStatistics:
    """Means of the numeric columns and the booking rate, in a single pass."""
    total = 0
    booked = 0
    surface = bedrooms = location = price = 0.0

    for record in records:
        total += 1
        booked += record.is_booked
        surface += record.surface_m2
        bedrooms += record.bedrooms
        location += record.location_score
        price += record.listing_price

    if total == 0:
        return DatasetStatistics()

    return DatasetStatistics(
        avg_surface=surface / total,
        avg_bedrooms=bedrooms / total,
        avg_location_score=location / total,
        avg_listing_price=price / total,
        booking_rate=booked / total,
        total_properties=total,
    )
