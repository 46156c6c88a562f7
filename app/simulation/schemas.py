"""
Pydantic schemas for simulation input and output.
Enforces the form's boundary constraints and the stored result shape.
"""
import json
import re
from datetime import datetime
from typing import List, Dict, Any, Optional

from pydantic import BaseModel, Field, field_validator, ConfigDict, ValidationError

from app.core.config import settings

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


class YearlyResult(BaseModel):
    """Baseline projection for a single year."""
    year: int = Field(..., ge=1, description="Simulation year")
    net_monthly: float = Field(..., description="Net monthly income")
    annual_net: float = Field(..., description="Net annual income (net_monthly x 12)")
    roi: float = Field(..., description="Return on purchase price (%)")

    model_config = ConfigDict(frozen=True)


class SimulationRequest(BaseModel):
    """Simulation form payload."""
    purchase_price: float = Field(
        ..., ge=settings.MIN_PURCHASE_PRICE, le=settings.MAX_AMOUNT, allow_inf_nan=False, description="Purchase price"
    )
    monthly_rent: float = Field(
        ..., ge=0, le=settings.MAX_AMOUNT, allow_inf_nan=False, description="Expected monthly rent"
    )
    annual_fee: float = Field(
        ..., ge=0, le=settings.MAX_AMOUNT, allow_inf_nan=False, description="Annual expenses (insurance, taxes, ...)"
    )
    email: str = Field(..., description="Contact e-mail")

    @field_validator("purchase_price", "monthly_rent", "annual_fee", mode="before")
    @classmethod
    def require_number(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            if not v:
                raise ValueError("This field is required")
        return v

    @field_validator("email", mode="before")
    @classmethod
    def validate_email(cls, v: Any) -> str:
        email = str(v or "").strip()
        if not email:
            raise ValueError("Email is required")
        if not settings.EMAIL_MIN_LENGTH <= len(email) <= settings.EMAIL_MAX_LENGTH:
            raise ValueError(
                f"Email must be between {settings.EMAIL_MIN_LENGTH} and {settings.EMAIL_MAX_LENGTH} characters"
            )
        if not EMAIL_PATTERN.match(email):
            raise ValueError("Please provide a valid email address (e.g., user@example.com)")
        return email.lower()


FIELD_LABELS = {
    "purchase_price": "Purchase price",
    "monthly_rent": "Monthly rent",
    "annual_fee": "Annual fee",
}


def format_validation_errors(exc: ValidationError) -> List[Dict[str, str]]:
    """Converts a pydantic ValidationError into field-level messages for the form."""
    errors: List[Dict[str, str]] = []
    for err in exc.errors():
        field = str(err["loc"][0]) if err["loc"] else "form"
        label = FIELD_LABELS.get(field, field)

        if err["type"] == "missing":
            message = f"{label} is required"
        elif err["type"] in ("float_parsing", "float_type"):
            message = f"{label} must be a number"
        elif err["type"] == "greater_than_equal":
            limit = err.get("ctx", {}).get("ge")
            message = f"{label} must be greater than 0" if limit and limit > 0 else f"{label} must be 0 or greater"
        elif err["type"] == "finite_number":
            message = f"{label} must be a finite number"
        elif err["type"] == "less_than_equal":
            limit = err.get("ctx", {}).get("le", settings.MAX_AMOUNT)
            message = f"{label} must not exceed {limit:,.0f}"
        else:
            # Custom validators raise ValueError("..."), pydantic prefixes it
            message = err["msg"].removeprefix("Value error, ")
            if message == "This field is required":
                message = f"{label} is required"

        errors.append({"field": field, "message": message})
    return errors


class SimulationView(BaseModel):
    """Read model of a stored simulation for templates."""
    id: str
    purchase_price: float
    monthly_rent: float
    annual_fee: float
    email: str
    results: List[YearlyResult]
    created_at: datetime
    correlation_id: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("results", mode="before")
    @classmethod
    def decode_results(cls, v: Any) -> Any:
        if isinstance(v, str):
            return json.loads(v)
        return v

    @property
    def has_negative_income(self) -> bool:
        return any(r.net_monthly < 0 or r.annual_net < 0 for r in self.results)
