"""
Typed records and derived statistics for the historical booking dataset.
"""
from typing import Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


class DatasetRecord(BaseModel):
    """One row of the booking dataset (a property listing on a given date)."""
    date: str = ""
    property_id: str = ""
    surface_m2: float = 0.0
    bedrooms: float = 0.0
    location_score: float = 0.0
    listing_price: float = 0.0
    is_booked: int = Field(0, ge=0, le=1)

    model_config = ConfigDict(frozen=True)


class DatasetStatistics(BaseModel):
    """Aggregate averages and global booking rate of a dataset."""
    avg_surface: float = 0.0
    avg_bedrooms: float = 0.0
    avg_location_score: float = 0.0
    avg_listing_price: float = 0.0
    booking_rate: float = Field(0.0, ge=0, le=1)
    total_properties: int = Field(0, ge=0)

    model_config = ConfigDict(frozen=True)


class AvailableDataset(BaseModel):
    """A dataset was obtained and parsed (it may still hold zero rows)."""
    records: Tuple[DatasetRecord, ...]
    stats: DatasetStatistics
    source: str

    model_config = ConfigDict(frozen=True)

    @property
    def available(self) -> bool:
        return True


class UnavailableDataset(BaseModel):
    """No dataset could be obtained; data-driven predictions are disabled."""
    reason: str

    model_config = ConfigDict(frozen=True)

    @property
    def available(self) -> bool:
        return False


DatasetState = Union[AvailableDataset, UnavailableDataset]


class PriceRange(BaseModel):
    min: float
    max: float


class SegmentationResult(BaseModel):
    """Occupancy estimate for properties priced like the user's."""
    segmented_aor: float = Field(..., ge=0, le=1)
    global_aor: float = Field(..., ge=0, le=1)
    filtered_count: int = Field(..., ge=0)
    total_count: int = Field(..., ge=0)
    used_segmentation: bool
    estimated_daily_price: Optional[float] = None
    price_range: Optional[PriceRange] = None


class PredictedIncome(BaseModel):
    """Occupancy-adjusted net monthly income, with the diagnostics behind it."""
    net_monthly: float
    adjusted_monthly_rent: float
    booking_rate: float
    occupancy_rate: float = Field(..., description="Occupancy as a percentage")
    booked_days_per_month: float
    segmented_aor: float
    global_aor: float
    filtered_count: int
    total_count: int
    used_segmentation: bool


class PredictedYear(PredictedIncome):
    """Data-driven projection for one year."""
    year: int = Field(..., ge=1)
    annual_net: float
    roi: float

