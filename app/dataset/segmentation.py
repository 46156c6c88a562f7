"""
Price segmentation of the booking dataset.
Occupancy is estimated from listings priced close to the user's implied daily rate.
"""
from typing import List, Sequence

from app.dataset.schemas import DatasetRecord, DatasetStatistics, PriceRange, SegmentationResult


def filter_dataset_by_price(records: Sequence[DatasetRecord], min_price: float, max_price: float) -> List[DatasetRecord]:
    """Keeps records whose listing price lies in [min_price, max_price]."""
    return [r for r in records if min_price <= r.listing_price <= max_price]


def calculate_segmented_aor(filtered: Sequence[DatasetRecord]) -> float:
    """Average occupancy rate of a set of records (0 for an empty set)."""
    if not filtered:
        return 0.0
    booked = sum(1 for r in filtered if r.is_booked == 1)
    return booked / len(filtered)


def segment_by_rent(
    records: Sequence[DatasetRecord],
    stats: DatasetStatistics,
    monthly_rent: float,
    days_per_month: float,
    margin: float
) -> SegmentationResult:
    """
    Segments the dataset around monthly_rent / days_per_month (+/- margin).
    Falls back to the global booking rate when the dataset or the band is empty.
    """
    global_aor = stats.booking_rate

    if not records:
        return SegmentationResult(
            segmented_aor=global_aor,
            global_aor=global_aor,
            filtered_count=0,
            total_count=0,
            used_segmentation=False
        )

    estimated_daily_price = monthly_rent / days_per_month
    price_range = PriceRange(
        min=estimated_daily_price * (1 - margin),
        max=estimated_daily_price * (1 + margin)
    )

    filtered = filter_dataset_by_price(records, price_range.min, price_range.max)

    if not filtered:
        return SegmentationResult(
            segmented_aor=global_aor,
            global_aor=global_aor,
            filtered_count=0,
            total_count=len(records),
            used_segmentation=False,
            estimated_daily_price=estimated_daily_price,
            price_range=price_range
        )

    return SegmentationResult(
        segmented_aor=calculate_segmented_aor(filtered),
        global_aor=global_aor,
        filtered_count=len(filtered),
        total_count=len(records),
        used_segmentation=True,
        estimated_daily_price=estimated_daily_price,
        price_range=price_range
    )
