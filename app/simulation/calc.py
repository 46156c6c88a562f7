"""
Rental yield calculator.
Net income after agency commission (tiered by year) and annual fees, and ROI on the purchase price.
"""
import math
from typing import List, Optional

from app.core.config import settings
from app.core.utils import round_currency
from app.simulation.schemas import YearlyResult


def commission_rate_for_year(year: int) -> float:
    """Year 1 and year 2 have their own tiers; every later year uses the default rate."""
    if year == 1:
        return settings.COMMISSION_RATE_YEAR_1
    if year == 2:
        return settings.COMMISSION_RATE_YEAR_2
    return settings.COMMISSION_RATE_DEFAULT


def net_income_from_gross(monthly_gross: float, annual_fee: float, year: int) -> float:
    """
    Net monthly income for an already-known gross monthly rent.

    Formula: net_annual = gross * 12 * (1 - commission) - annual_fee
    """
    commission_rate = commission_rate_for_year(year)
    net_annual = monthly_gross * 12 * (1 - commission_rate) - annual_fee
    return net_annual / 12


def net_monthly_income(monthly_rent: float, annual_fee: float, year: int) -> float:
    """Net monthly income (rounded to the cent) for the given simulation year."""
    return round_currency(net_income_from_gross(monthly_rent, annual_fee, year))


def compute_roi(annual_net: float, purchase_price: float) -> float:
    """Annual return as a percentage of the purchase price. Zero when the price is not positive."""
    if purchase_price <= 0:
        return 0.0
    return round_currency(annual_net / purchase_price * 100)


def _validate_inputs(purchase_price: float, monthly_rent: float, annual_fee: float, years: int) -> None:
    if isinstance(years, bool) or not isinstance(years, int) or years < 1:
        raise ValueError("Years must be a positive integer")
    if not all(math.isfinite(value) for value in (purchase_price, monthly_rent, annual_fee)):
        raise ValueError("Amounts must be finite numbers")
    if purchase_price <= 0:
        raise ValueError("Purchase price must be greater than 0")
    if monthly_rent < 0:
        raise ValueError("Monthly rent must be 0 or greater")
    if annual_fee < 0:
        raise ValueError("Annual fee must be 0 or greater")


def return_over_years(
    purchase_price: float,
    monthly_rent: float,
    annual_fee: float,
    years: Optional[int] = None
) -> List[YearlyResult]:
    """
    Builds the baseline projection, one entry per year (1..years).
    Raises ValueError on inputs that must never be persisted.
    """
    years = settings.SIMULATION_YEARS if years is None else years
    _validate_inputs(purchase_price, monthly_rent, annual_fee, years)

    results: List[YearlyResult] = []
    for year in range(1, years + 1):
        net_monthly = net_monthly_income(monthly_rent, annual_fee, year)
        annual_net = round_currency(net_monthly * 12)
        results.append(YearlyResult(
            year=year,
            net_monthly=net_monthly,
            annual_net=annual_net,
            roi=compute_roi(annual_net, purchase_price)
        ))

    return results
