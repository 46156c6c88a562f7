"""
Data-driven return prediction.

Replays a simulation with the rent scaled by an occupancy rate learned from the
booking dataset. The dataset is loaded once per process and shared; concurrent
first callers wait for the same load instead of downloading in parallel.
"""
import asyncio
from pathlib import Path
from typing import Awaitable, Callable, List, Optional

from fastapi import Request

from app.core.config import settings
from app.core.logger import logger
from app.core.utils import round_currency
from app.dataset.acquisition import DatasetDownloader, resolve_dataset_path
from app.dataset.loader import calculate_dataset_stats, load_dataset
from app.dataset.schemas import (
    AvailableDataset,
    DatasetState,
    DatasetStatistics,
    PredictedIncome,
    PredictedYear,
    SegmentationResult,
    UnavailableDataset,
)
from app.dataset.segmentation import segment_by_rent
from app.simulation.calc import compute_roi, net_income_from_gross

DatasetPathResolver = Callable[[], Awaitable[Optional[Path]]]


class PredictionService:
    """Owns the cached dataset state and computes occupancy-adjusted projections."""

    def __init__(
        self,
        resolve_path: DatasetPathResolver,
        days_per_month: float = 30.42,
        price_margin: float = 0.15
    ):
        self._resolve_path = resolve_path
        self.days_per_month = days_per_month
        self.price_margin = price_margin
        self._state: Optional[DatasetState] = None
        self._lock = asyncio.Lock()
        self.load_count = 0

    @classmethod
    def from_settings(cls) -> "PredictionService":
        downloader = DatasetDownloader.from_settings()

        async def resolve() -> Optional[Path]:
            return await resolve_dataset_path(settings.DATASET_LOCAL_PATH, downloader)

        return cls(
            resolve_path=resolve,
            days_per_month=settings.AVERAGE_DAYS_PER_MONTH,
            price_margin=settings.PRICE_MARGIN,
        )

    @property
    def state(self) -> Optional[DatasetState]:
        """Cached state without triggering a load."""
        return self._state

    async def _load(self) -> DatasetState:
        self.load_count += 1
        try:
            path = await self._resolve_path()
            if path is None:
                logger.warning("Dataset file not found. Data-driven predictions will be disabled.")
                return UnavailableDataset(reason="Dataset file not found")

            # CSV parsing runs off the event loop
            records = await asyncio.to_thread(load_dataset, path)
            stats = await asyncio.to_thread(calculate_dataset_stats, records)
            return AvailableDataset(
                records=tuple(records),
                stats=stats,
                source=str(path)
            )
        except Exception as e:
            logger.error("Error loading dataset stats: %s", e, exc_info=True)
            return UnavailableDataset(reason=str(e))

    async def get_dataset(self) -> DatasetState:
        """Loaded dataset state; the first call (or concurrent first calls) loads it once."""
        if self._state is not None:
            return self._state

        async with self._lock:
            if self._state is None:
                self._state = await self._load()
        return self._state

    async def get_dataset_stats(self) -> Optional[DatasetStatistics]:
        """Statistics of the cached dataset, or None when no dataset is available."""
        state = await self.get_dataset()
        if isinstance(state, AvailableDataset):
            return state.stats
        return None

    async def calculate_segmented_occupancy_rate(self, monthly_rent: float) -> Optional[SegmentationResult]:
        """Occupancy estimate for listings priced like monthly_rent; None without a dataset."""
        state = await self.get_dataset()
        if not isinstance(state, AvailableDataset):
            return None

        return segment_by_rent(
            state.records,
            state.stats,
            monthly_rent,
            days_per_month=self.days_per_month,
            margin=self.price_margin
        )

    async def predict_net_monthly_income(
        self,
        monthly_rent: float,
        annual_fee: float,
        year: int
    ) -> Optional[PredictedIncome]:
        """
        Net monthly income with the rent scaled by the segmented occupancy rate.
        Returns None when predictions are disabled (no dataset).
        """
        segmentation = await self.calculate_segmented_occupancy_rate(monthly_rent)
        if segmentation is None:
            return None

        occupancy_rate = segmentation.segmented_aor
        adjusted_monthly_rent = monthly_rent * occupancy_rate
        net_monthly = round_currency(net_income_from_gross(adjusted_monthly_rent, annual_fee, year))

        return PredictedIncome(
            net_monthly=net_monthly,
            adjusted_monthly_rent=round_currency(adjusted_monthly_rent),
            booking_rate=occupancy_rate,
            occupancy_rate=occupancy_rate * 100,
            booked_days_per_month=round_currency(occupancy_rate * self.days_per_month),
            segmented_aor=segmentation.segmented_aor,
            global_aor=segmentation.global_aor,
            filtered_count=segmentation.filtered_count,
            total_count=segmentation.total_count,
            used_segmentation=segmentation.used_segmentation
        )

    async def predict_return_over_years(
        self,
        purchase_price: float,
        monthly_rent: float,
        annual_fee: float,
        years: Optional[int] = None
    ) -> Optional[List[PredictedYear]]:
        """Per-year predictions with ROI; None as soon as any year cannot be predicted."""
        years = settings.SIMULATION_YEARS if years is None else years
        predictions: List[PredictedYear] = []

        for year in range(1, years + 1):
            prediction = await self.predict_net_monthly_income(monthly_rent, annual_fee, year)
            if prediction is None:
                return None

            annual_net = round_currency(prediction.net_monthly * 12)
            predictions.append(PredictedYear(
                year=year,
                annual_net=annual_net,
                roi=compute_roi(annual_net, purchase_price),
                **prediction.model_dump()
            ))

        return predictions

    async def initialize_dataset(self) -> None:
        """Startup warm-up. Logs the outcome and never raises."""
        try:
            logger.info("Initializing dataset...")
            stats = await self.get_dataset_stats()
            if stats is not None and stats.total_properties > 0:
                logger.info("Dataset initialized successfully: %d properties loaded", stats.total_properties)
            else:
                logger.warning("Dataset initialized but no data available. Data-driven predictions will be disabled.")
        except Exception as e:
            logger.error("Error initializing dataset: %s", e, exc_info=True)

    def reset_cache(self) -> None:
        """
        Drops the cached dataset so the next call reloads it.

        A load already in flight keeps the old lock and still finishes, writing its
        result into the cache; a caller arriving after the reset takes the new lock
        and may start a second load alongside it. Call it between requests, not
        while predictions are being served.
        """
        self._state = None
        self._lock = asyncio.Lock()


def get_prediction_service(request: Request) -> PredictionService:
    """FastAPI dependency: the application's shared prediction service."""
    return request.app.state.prediction_service
